"""Log monitor entry point — starts the Flask dashboard API."""

import logging

from gatewaylog.config import load_config
from gatewaylog.web import create_app

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)


def main() -> None:
    config = load_config()
    app = create_app(config)
    app.run(host=config.server_host, port=config.server_port, use_reloader=False)


# For gunicorn: `gunicorn 'gatewaylog.web:create_app()'`
if __name__ == "__main__":
    main()
