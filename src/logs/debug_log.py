import logging
import sys
import json
import inspect
import traceback
from pathlib import Path

log_dir = Path(__file__).parent
log_dir.mkdir(exist_ok=True)

# ANSI-цвета для консоли
BLUE = '\033[94m'
GREEN = '\033[92m'
YELLOW = '\033[93m'
RED = '\033[91m'
CYAN = '\033[96m'
BOLD = '\033[1m'
END = '\033[0m'


def format_object(obj) -> str:
    """Compact printable form for dicts, lists and ORM rows"""
    if isinstance(obj, (list, dict, tuple, set)):
        try:
            return json.dumps(obj, indent=2, ensure_ascii=False, default=str)
        except (TypeError, ValueError):
            return str(obj)
    if hasattr(obj, '__dict__'):
        return str({k: v for k, v in obj.__dict__.items() if not k.startswith('_')})
    return str(obj)


class DebugLogger:
    """Отладочный логгер: уровень DEBUG, информация о вызывающем коде, цветной вывод"""

    def __init__(self, name="debug", level=logging.DEBUG):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(level)
        self.logger.propagate = False

        if self.logger.handlers:
            self.logger.handlers.clear()

        formatter = logging.Formatter(
            '%(asctime)s - %(levelname)s - %(message)s'
        )

        file_handler = logging.FileHandler(log_dir / "debug.log", encoding='utf-8')
        file_handler.setFormatter(formatter)
        file_handler.setLevel(level)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        console_handler.setLevel(level)

        self.logger.addHandler(file_handler)
        self.logger.addHandler(console_handler)

    @staticmethod
    def _caller() -> str:
        # два кадра вверх: _caller -> debug/... -> вызывающий код
        frame = inspect.currentframe().f_back.f_back
        filename = frame.f_code.co_filename
        if "src" in filename:
            filename = filename[filename.index("src"):]
        return f"{BLUE}[{filename}:{frame.f_lineno} - {frame.f_code.co_name}]{END}"

    def debug(self, message, *args, **kwargs):
        self.logger.debug(f"{self._caller()} {message}", *args, **kwargs)

    def info(self, message, *args, **kwargs):
        self.logger.info(f"{GREEN}{message}{END}", *args, **kwargs)

    def warning(self, message, *args, **kwargs):
        self.logger.warning(f"{YELLOW}{message}{END}", *args, **kwargs)

    def error(self, message, *args, **kwargs):
        """Ошибка; если мы внутри except, к сообщению добавляется трейс"""
        trace = traceback.format_exc()
        if trace and trace != 'NoneType: None\n':
            message = f"{message}\n{RED}Traceback:{END}\n{trace}"
        self.logger.error(f"{RED}{message}{END}", *args, **kwargs)

    def log_exception(self, message="Произошло исключение"):
        exc_type, exc_value, _ = sys.exc_info()
        if exc_type:
            self.error(f"{message}: {exc_type.__name__}: {exc_value}")
        else:
            self.error(message)

    def log_request(self, request):
        method = getattr(request, 'method', 'UNKNOWN')
        url = str(getattr(request, 'url', 'UNKNOWN'))
        client = getattr(request, 'client', None)
        client_host = client.host if client else "unknown"
        self.debug(f"{CYAN}HTTP запрос:{END} {method} {url} ({client_host})")

    def log_response(self, response, process_time=None):
        status_code = getattr(response, 'status_code', 0)
        color = GREEN if 200 <= status_code < 400 else YELLOW if 400 <= status_code < 500 else RED
        info = f"{CYAN}HTTP ответ:{END} {color}Статус {status_code}{END}"
        if process_time is not None:
            info += f" за {process_time:.3f}с"
        self.debug(info)

    def log_data(self, name, data):
        self.debug(f"{CYAN}{name}:{END}\n{format_object(data)}")


debug_logger = DebugLogger()
