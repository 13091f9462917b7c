import time
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from src.logs.server_log import api_logger
from src.logs.debug_log import debug_logger


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Логирует каждый запрос: метод, путь, статус, время обработки"""

    async def dispatch(self, request: Request, call_next):
        start_time = time.perf_counter()
        method = request.method
        path = request.url.path
        client_host = request.client.host if request.client else "unknown"

        debug_logger.log_request(request)

        try:
            response = await call_next(request)
        except Exception as e:
            debug_logger.log_exception(f"Ошибка при обработке запроса {method} {path}")
            api_logger.error(f"Error processing request {method} {path}: {str(e)}")
            raise

        process_time = time.perf_counter() - start_time
        api_logger.info(
            f"Request: {method} {path} | "
            f"Status: {response.status_code} | "
            f"Client: {client_host} | "
            f"Process Time: {process_time:.3f}s"
        )
        debug_logger.log_response(response, process_time)
        response.headers["X-Process-Time"] = f"{process_time:.3f}"
        return response
