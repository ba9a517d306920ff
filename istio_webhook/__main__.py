"""
Entry point for running the Istio action webhook.

Usage:
    python -m istio_webhook [--config-api-service HOST:PORT] [--mixer-api-service HOST:PORT]
                            [--username USER] [--password PASS] ...

Serves HTTPS on 0.0.0.0:443 with the certificate in /etc/istio-webhook.
"""
import sys

import uvicorn

from logging_setup import setup_logging, get_logger, Component

from .config import WebhookConfig, load_env_file
from .webhook_server import create_app


def main(argv=None) -> int:
    load_env_file()
    config = WebhookConfig.from_args(argv)

    setup_logging(level=config.log_level, use_json=True)
    logger = get_logger(Component.WEBHOOK_SERVER)

    app = create_app(config)

    logger.info(
        "Starting the Istio Google Action service...",
        host=config.host,
        port=config.port,
        config_api_service=config.config_api_service,
        mixer_api_service=config.mixer_api_service,
        service_graph_service=config.service_graph_service,
    )
    uvicorn.run(
        app,
        host=config.host,
        port=config.port,
        ssl_certfile=config.tls_cert_file,
        ssl_keyfile=config.tls_key_file,
        log_level=config.log_level.lower(),
        log_config=None,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
