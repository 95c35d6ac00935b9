"""
Gunicorn configuration for GiftShelf.

Workers are stateless: claim state lives only in the database, so any number
of workers (or hosts) can serve the same registry.

Environment Variables:
    GUNICORN_BIND - Bind address (default: 0.0.0.0:8000)
    GUNICORN_WORKERS - Number of worker processes (default: CPU * 2 + 1)
    GUNICORN_WORKER_CLASS - Worker class (default: gthread)
    GUNICORN_THREADS - Threads per worker for gthread (default: 4)
    GUNICORN_TIMEOUT - Worker timeout in seconds (default: 30)
    GUNICORN_GRACEFUL_TIMEOUT - Graceful shutdown timeout (default: 30)
    GUNICORN_KEEPALIVE - Keep-alive timeout (default: 5)
    GUNICORN_MAX_REQUESTS - Max requests per worker before restart (default: 1000)
    GUNICORN_MAX_REQUESTS_JITTER - Random jitter for max_requests (default: 50)
    GUNICORN_LOG_LEVEL - Logging level (default: info)
    GUNICORN_ACCESS_LOG - Access log file (default: -)
    GUNICORN_ERROR_LOG - Error log file (default: -)
"""

import multiprocessing
import os


def get_env_int(key: str, default: int) -> int:
    """Get integer from environment variable with fallback."""
    try:
        return int(os.getenv(key, default))
    except (ValueError, TypeError):
        return default


def get_env_str(key: str, default: str) -> str:
    """Get string from environment variable with fallback."""
    return os.getenv(key, default)


def get_env_bool(key: str, default: bool) -> bool:
    return get_env_str(key, str(default)).lower() in ('true', '1', 'yes')


# =============================================================================
# Application
# =============================================================================

wsgi_app = 'giftshelf_registry.wsgi:application'
raw_env = ['DJANGO_SETTINGS_MODULE=giftshelf_registry.settings']

# =============================================================================
# Server Socket
# =============================================================================

bind = get_env_str('GUNICORN_BIND', '0.0.0.0:8000')
backlog = get_env_int('GUNICORN_BACKLOG', 2048)

# =============================================================================
# Worker Processes
# =============================================================================

workers = get_env_int('GUNICORN_WORKERS', multiprocessing.cpu_count() * 2 + 1)

# gthread: one request per thread. Claim requests mostly wait on row locks,
# so a few threads per worker keep CPUs busy.
worker_class = get_env_str('GUNICORN_WORKER_CLASS', 'gthread')
threads = get_env_int('GUNICORN_THREADS', 4)

# =============================================================================
# Worker Lifecycle
# =============================================================================

# Must stay well above CLAIM_LOCK_TIMEOUT_MS so a lock wait ends as a Busy
# response rather than a killed worker.
timeout = get_env_int('GUNICORN_TIMEOUT', 30)
graceful_timeout = get_env_int('GUNICORN_GRACEFUL_TIMEOUT', 30)
keepalive = get_env_int('GUNICORN_KEEPALIVE', 5)

max_requests = get_env_int('GUNICORN_MAX_REQUESTS', 1000)
max_requests_jitter = get_env_int('GUNICORN_MAX_REQUESTS_JITTER', 50)

# =============================================================================
# Logging
# =============================================================================

accesslog = get_env_str('GUNICORN_ACCESS_LOG', '-')
errorlog = get_env_str('GUNICORN_ERROR_LOG', '-')
loglevel = get_env_str('GUNICORN_LOG_LEVEL', 'info')
access_log_format = get_env_str(
    'GUNICORN_ACCESS_LOG_FORMAT',
    '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'
)

proc_name = get_env_str('GUNICORN_PROC_NAME', 'giftshelf')

# =============================================================================
# Security
# =============================================================================

limit_request_line = get_env_int('GUNICORN_LIMIT_REQUEST_LINE', 4094)
limit_request_field_size = get_env_int('GUNICORN_LIMIT_REQUEST_FIELD_SIZE', 8190)
limit_request_fields = get_env_int('GUNICORN_LIMIT_REQUEST_FIELDS', 100)

preload_app = get_env_bool('GUNICORN_PRELOAD_APP', False)

# =============================================================================
# Server Hooks
# =============================================================================

def on_starting(server):
    """Called just before the master process is initialized."""
    server.log.info("Starting GiftShelf with Gunicorn")
    server.log.info(f"Workers: {workers} x {threads} threads, Bind: {bind}")


def post_fork(server, worker):
    """Called just after a worker has been forked."""
    server.log.debug(f"Worker {worker.pid} spawned")


def worker_abort(worker):
    """Called when a worker receives the SIGABRT signal."""
    worker.log.warning(f"Worker {worker.pid} aborted (timeout?)")


def on_exit(server):
    """Called just before exiting Gunicorn."""
    server.log.info("Shutting down GiftShelf")
