from src.logs.server_log import api_logger
from src.logs.debug_log import debug_logger
