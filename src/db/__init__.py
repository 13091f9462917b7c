from src.db.database import init_db, close_db
