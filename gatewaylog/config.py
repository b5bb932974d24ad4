"""Configuration module — frozen dataclasses built from YAML defaults and env vars."""

import copy
import os
from dataclasses import dataclass, field

import jsonschema
import yaml

from gatewaylog.redaction import DEFAULT_REDACT_KEYS


class ConfigError(Exception):
    """Raised when the configuration file cannot be loaded or is invalid."""

    def __init__(self, message: str, errors: list[str] | None = None):
        super().__init__(message)
        self.errors = errors or []


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes")


DEFAULT_RESPONSE_TYPES = {
    "success": False,
    "error": True,
    "validation": True,
    "not_found": True,
    "unauthorized": True,
    "forbidden": True,
    "server_error": True,
    "created": False,
    "updated": False,
    "deleted": True,
    "paginated": False,
}

DEFAULTS = {
    "app": {
        "name": "gateway",
        "env": "production",
        "api_version": "1.0.0",
    },
    "server": {
        "host": "0.0.0.0",
        "port": 8000,
    },
    "logging": {
        "log_dir": "./logs",
        "file_prefix": "gateway",
        "local_fallback": True,
        "force": False,
        "responses": True,
        "responses_per_type": DEFAULT_RESPONSE_TYPES,
        "redact_keys": list(DEFAULT_REDACT_KEYS),
        "label_locale": "tr",
        "response_locale": "en",
    },
    "remote": {
        "enabled": True,
        "host": "http://localhost:9200",
        "index_prefix": "gateway-logs",
        "index": None,
        "timeout": 3.0,
        "probe_timeout": 1.0,
    },
    "health": {
        "probe_interval": 30,
    },
}

CONFIG_SCHEMA = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "app": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "name": {"type": "string", "minLength": 1},
                "env": {"type": "string", "pattern": r"^\w+$"},
                "api_version": {"type": "string"},
            },
        },
        "server": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "host": {"type": "string"},
                "port": {"type": "integer", "minimum": 1, "maximum": 65535},
            },
        },
        "logging": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "log_dir": {"type": "string", "minLength": 1},
                "file_prefix": {"type": "string", "minLength": 1},
                "local_fallback": {"type": "boolean"},
                "force": {"type": "boolean"},
                "responses": {"type": "boolean"},
                "responses_per_type": {
                    "type": "object",
                    "additionalProperties": {"type": "boolean"},
                },
                "redact_keys": {"type": "array", "items": {"type": "string", "minLength": 1}},
                "label_locale": {"type": "string"},
                "response_locale": {"type": "string"},
            },
        },
        "remote": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "enabled": {"type": "boolean"},
                "host": {"type": "string", "minLength": 1},
                "index_prefix": {"type": "string", "minLength": 1},
                "index": {"type": ["string", "null"]},
                "timeout": {"type": "number", "exclusiveMinimum": 0},
                "probe_timeout": {"type": "number", "exclusiveMinimum": 0},
            },
        },
        "health": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "probe_interval": {"type": "integer", "minimum": 0},
            },
        },
    },
}

_VALIDATOR = jsonschema.Draft202012Validator(CONFIG_SCHEMA)


@dataclass(frozen=True)
class RemoteConfig:
    enabled: bool = True
    host: str = "http://localhost:9200"
    index_prefix: str = "gateway-logs"
    index: str | None = None
    timeout: float = 3.0
    probe_timeout: float = 1.0


@dataclass(frozen=True)
class Config:
    app_name: str = "gateway"
    env: str = "production"
    api_version: str = "1.0.0"
    server_host: str = "0.0.0.0"
    server_port: int = 8000
    log_dir: str = "./logs"
    log_file_prefix: str = "gateway"
    local_fallback: bool = True
    log_force: bool = False
    log_responses: bool = True
    log_responses_per_type: dict = field(
        default_factory=lambda: dict(DEFAULT_RESPONSE_TYPES)
    )
    redact_keys: tuple = DEFAULT_REDACT_KEYS
    label_locale: str = "tr"
    response_locale: str = "en"
    health_probe_interval: int = 30
    remote: RemoteConfig = field(default_factory=RemoteConfig)

    def logs_response_type(self, response_type: str) -> bool:
        return bool(self.log_responses_per_type.get(response_type, False))


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override dict into base dict."""
    result = copy.deepcopy(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


def _read_yaml(path: str) -> dict:
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        return {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Top level of {path} must be a mapping")
    return data


def validate_tree(tree: dict) -> None:
    """Raise ConfigError listing every schema violation in *tree*."""
    errors = sorted(_VALIDATOR.iter_errors(tree), key=lambda e: list(e.path))
    if errors:
        messages = [
            "/".join(str(p) for p in error.path) + ": " + error.message
            if error.path else error.message
            for error in errors
        ]
        raise ConfigError("Invalid configuration", messages)


def _apply_env(tree: dict, environ) -> dict:
    """Overlay recognised environment variables on a merged config tree."""
    tree = copy.deepcopy(tree)
    app, server = tree["app"], tree["server"]
    logging_, remote = tree["logging"], tree["remote"]

    if "APP_NAME" in environ:
        app["name"] = environ["APP_NAME"]
    if "APP_ENV" in environ:
        app["env"] = environ["APP_ENV"]
    if "LOG_DIR" in environ:
        logging_["log_dir"] = environ["LOG_DIR"]
    if "LOG_FORCE" in environ:
        logging_["force"] = _parse_bool(environ["LOG_FORCE"])
    if "LOG_API_RESPONSES" in environ:
        logging_["responses"] = _parse_bool(environ["LOG_API_RESPONSES"])
    if "LOG_SUCCESS_RESPONSES" in environ:
        logging_["responses_per_type"]["success"] = _parse_bool(
            environ["LOG_SUCCESS_RESPONSES"]
        )
    if "LOG_TO_LOCAL_FALLBACK" in environ:
        logging_["local_fallback"] = _parse_bool(environ["LOG_TO_LOCAL_FALLBACK"])
    if "REMOTE_LOG_ENABLED" in environ:
        remote["enabled"] = _parse_bool(environ["REMOTE_LOG_ENABLED"])
    if "REMOTE_LOG_HOST" in environ:
        remote["host"] = environ["REMOTE_LOG_HOST"]
    if "REMOTE_LOG_INDEX_PREFIX" in environ:
        remote["index_prefix"] = environ["REMOTE_LOG_INDEX_PREFIX"]
    if "REMOTE_LOG_INDEX" in environ:
        remote["index"] = environ["REMOTE_LOG_INDEX"] or None
    if "REMOTE_LOG_TIMEOUT" in environ:
        remote["timeout"] = float(environ["REMOTE_LOG_TIMEOUT"])
    if "SERVER_HOST" in environ:
        server["host"] = environ["SERVER_HOST"]
    if "SERVER_PORT" in environ:
        server["port"] = int(environ["SERVER_PORT"])
    return tree


def config_from_tree(tree: dict) -> Config:
    """Build a Config from a fully merged config tree."""
    app, server = tree["app"], tree["server"]
    logging_, remote = tree["logging"], tree["remote"]
    return Config(
        app_name=app["name"],
        env=app["env"],
        api_version=app["api_version"],
        server_host=server["host"],
        server_port=int(server["port"]),
        log_dir=logging_["log_dir"],
        log_file_prefix=logging_["file_prefix"],
        local_fallback=bool(logging_["local_fallback"]),
        log_force=bool(logging_["force"]),
        log_responses=bool(logging_["responses"]),
        log_responses_per_type=dict(logging_["responses_per_type"]),
        redact_keys=tuple(key.lower() for key in logging_["redact_keys"]),
        label_locale=logging_["label_locale"],
        response_locale=logging_["response_locale"],
        health_probe_interval=int(tree["health"]["probe_interval"]),
        remote=RemoteConfig(
            enabled=bool(remote["enabled"]),
            host=remote["host"].rstrip("/"),
            index_prefix=remote["index_prefix"],
            index=remote["index"],
            timeout=float(remote["timeout"]),
            probe_timeout=float(remote["probe_timeout"]),
        ),
    )


def load_config(path: str | None = None, environ=None) -> Config:
    """Build Config from defaults <- YAML file <- env vars (highest priority).

    The YAML path defaults to the ``CONFIG_PATH`` environment variable; a
    missing file means "defaults only".
    """
    if environ is None:
        environ = os.environ
    if path is None:
        path = environ.get("CONFIG_PATH")

    tree = copy.deepcopy(DEFAULTS)
    if path:
        user_tree = _read_yaml(path)
        validate_tree(user_tree)
        tree = _deep_merge(tree, user_tree)

    try:
        tree = _apply_env(tree, environ)
    except ValueError as exc:
        raise ConfigError(f"Invalid environment override: {exc}") from exc

    validate_tree(tree)
    return config_from_tree(tree)
