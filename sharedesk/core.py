import os
from prometheus_client import Counter, start_http_server
import logging

logger = logging.getLogger(__name__)

METRICS_PORT = int(os.getenv('METRICS_PORT', '8001'))

LOGIN_ATTEMPTS = Counter('sharedesk_login_attempts_total', 'Login attempts', ['outcome'])
UPLOADED_FILES = Counter('sharedesk_uploaded_files_total', 'Files stored')
UPLOADED_BYTES = Counter('sharedesk_uploaded_bytes_total', 'Bytes written to blob storage')
DELETED_ITEMS = Counter('sharedesk_deleted_items_total', 'Texts and files deleted', ['kind'])


def init_metrics(port: int = METRICS_PORT):
    """Initialize Prometheus metrics server"""
    try:
        start_http_server(port)
        logger.info(f"Prometheus metrics server started on port {port}")
    except Exception as e:
        logger.warning(f'Prometheus start failed: {e}')
