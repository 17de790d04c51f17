"""
Gunicorn configuration for Puzzle Craft.
"""
import os

bind = f"0.0.0.0:{os.getenv('PORT', '8080')}"

# Sync workers; the storefront endpoints are short request/response calls
workers = int(os.getenv('GUNICORN_WORKERS', '2'))
worker_class = 'sync'
timeout = int(os.getenv('GUNICORN_TIMEOUT', '60'))  # Shopify GraphQL + S3 uploads
keepalive = 5

# Logging
accesslog = '-'  # stdout
errorlog = '-'   # stderr
loglevel = os.getenv('LOG_LEVEL', 'info').lower()
capture_output = True

proc_name = 'puzzlecraft'

preload_app = True
graceful_timeout = 30


def on_starting(server):
    print("[Gunicorn] Starting Puzzle Craft server...")


def on_exit(server):
    print("[Gunicorn] Puzzle Craft server shutting down...")
