"""
Application entry point
File khởi chạy ứng dụng Flask
"""
import atexit
import os

from app import create_app
from app import globals as app_globals

# Tạo Flask application (app.config đã nạp .env)
app = create_app()
atexit.register(app_globals.capture_service.shutdown)

if __name__ == '__main__':
    host = os.getenv('FLASK_HOST', '0.0.0.0')
    port = int(os.getenv('FLASK_PORT', 5000))
    debug = os.getenv('FLASK_DEBUG', 'False').lower() in ('true', '1', 'yes')

    app.logger.info(f"Starting Flask application on {host}:{port}")
    app.logger.info(f"Debug mode: {debug}")

    # threaded=True: SSE streams và capture frames chạy song song
    app.run(
        host=host,
        port=port,
        debug=debug,
        threaded=True
    )
