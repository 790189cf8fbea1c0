# wsgi.py
import logging
import os

from licence_scan.main import create_app

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))

app = create_app()

if __name__ == "__main__":
    app.run(host="0.0.0.0", port=int(os.getenv("PORT", "5001")))
