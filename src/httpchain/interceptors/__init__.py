"""Built-in interceptors: retry, bearer authentication and logging."""

from httpchain.interceptors.bearer import BearerInterceptor
from httpchain.interceptors.logger import LoggerInterceptor, LogMode
from httpchain.interceptors.retry import RetryInterceptor, RetryOn

__all__ = ["BearerInterceptor", "LogMode", "LoggerInterceptor", "RetryInterceptor", "RetryOn"]
