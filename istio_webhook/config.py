"""
Webhook configuration.

Built once at startup from command-line flags, environment variables and
defaults (in that order of precedence), then passed by reference into the
Istio client and the webhook server.
"""
import argparse
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Mapping, Optional, Sequence

from dotenv import load_dotenv


DEFAULT_CONFIG_API_SERVICE = "istio-pilot:8081"
DEFAULT_MIXER_API_SERVICE = "istio-mixer:9094"
DEFAULT_SERVICE_GRAPH_SERVICE = "servicegraph:8088"
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 443
DEFAULT_TLS_CERT_FILE = "/etc/istio-webhook/tls.crt"
DEFAULT_TLS_KEY_FILE = "/etc/istio-webhook/tls.key"

ENV_FILE = Path(__file__).parent.parent / ".env_local"


def _parse_int_env(env: Mapping[str, str], key: str, default: int) -> int:
    """
    Parse integer environment variable, stripping comments and whitespace.

    Handles cases like:
    - "8443  # comment" -> 8443
    - "8443" -> 8443
    - None or garbage -> default
    """
    value = env.get(key)
    if not value:
        return default

    if "#" in value:
        value = value.split("#")[0]
    value = value.strip()

    if not value:
        return default

    try:
        return int(value)
    except ValueError:
        return default


@dataclass(frozen=True)
class WebhookConfig:
    """Immutable webhook configuration."""

    # Istio control plane
    config_api_service: str = DEFAULT_CONFIG_API_SERVICE
    mixer_api_service: str = DEFAULT_MIXER_API_SERVICE
    service_graph_service: str = DEFAULT_SERVICE_GRAPH_SERVICE

    # Basic auth for the config API
    username: str = ""
    password: str = ""

    # Listener
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    tls_cert_file: str = DEFAULT_TLS_CERT_FILE
    tls_key_file: str = DEFAULT_TLS_KEY_FILE

    log_level: str = "INFO"

    def __repr__(self) -> str:
        # Never leak the password into logs or tracebacks
        return (
            f"WebhookConfig(config_api_service={self.config_api_service!r}, "
            f"mixer_api_service={self.mixer_api_service!r}, "
            f"service_graph_service={self.service_graph_service!r}, "
            f"username={self.username!r}, host={self.host!r}, port={self.port!r})"
        )

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "WebhookConfig":
        """Load configuration from environment variables."""
        env = os.environ if env is None else env
        return cls(
            config_api_service=env.get("ISTIO_CONFIG_API_SERVICE", DEFAULT_CONFIG_API_SERVICE),
            mixer_api_service=env.get("ISTIO_MIXER_API_SERVICE", DEFAULT_MIXER_API_SERVICE),
            service_graph_service=env.get("ISTIO_SERVICE_GRAPH_SERVICE", DEFAULT_SERVICE_GRAPH_SERVICE),
            username=env.get("ISTIO_USERNAME", ""),
            password=env.get("ISTIO_PASSWORD", ""),
            host=env.get("ISTIO_WEBHOOK_HOST", DEFAULT_HOST),
            port=_parse_int_env(env, "ISTIO_WEBHOOK_PORT", DEFAULT_PORT),
            tls_cert_file=env.get("ISTIO_WEBHOOK_TLS_CERT", DEFAULT_TLS_CERT_FILE),
            tls_key_file=env.get("ISTIO_WEBHOOK_TLS_KEY", DEFAULT_TLS_KEY_FILE),
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
        )

    @classmethod
    def from_args(
        cls,
        argv: Optional[Sequence[str]] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> "WebhookConfig":
        """
        Load configuration from command-line flags.

        Flags left unset fall back to the environment, then to defaults.
        """
        base = cls.from_env(env)
        args = build_arg_parser().parse_args(argv)
        overrides = {key: value for key, value in vars(args).items() if value is not None}
        return replace(base, **overrides)


def build_arg_parser() -> argparse.ArgumentParser:
    """Command-line flags. Every default is None so unset flags can be detected."""
    parser = argparse.ArgumentParser(
        prog="istio_webhook",
        description="Istio Google Action fulfillment webhook.",
    )
    parser.add_argument("--config-api-service", dest="config_api_service",
                        help=f"The Istio config API service. (default: {DEFAULT_CONFIG_API_SERVICE})")
    parser.add_argument("--mixer-api-service", dest="mixer_api_service",
                        help=f"The mixer API service. (default: {DEFAULT_MIXER_API_SERVICE})")
    parser.add_argument("--service-graph-service", dest="service_graph_service",
                        help=f"The servicegraph service. (default: {DEFAULT_SERVICE_GRAPH_SERVICE})")
    parser.add_argument("--username", help="The Istio config service username")
    parser.add_argument("--password", help="The Istio config service password")
    parser.add_argument("--host", help=f"Listen address. (default: {DEFAULT_HOST})")
    parser.add_argument("--port", type=int, help=f"Listen port. (default: {DEFAULT_PORT})")
    parser.add_argument("--tls-cert-file", dest="tls_cert_file",
                        help=f"TLS certificate. (default: {DEFAULT_TLS_CERT_FILE})")
    parser.add_argument("--tls-key-file", dest="tls_key_file",
                        help=f"TLS private key. (default: {DEFAULT_TLS_KEY_FILE})")
    parser.add_argument("--log-level", dest="log_level",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
                        type=str.upper, help="Log level. (default: INFO)")
    return parser


def load_env_file(path: Path = ENV_FILE) -> bool:
    """Load a local .env file into the environment without overriding it."""
    if not path.exists():
        return False
    return load_dotenv(path, override=False)
