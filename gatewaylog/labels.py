"""Human-readable labels for levels, domains, actions and response messages."""

import os

import yaml

LOCALES_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "locales")


class LabelCatalog:
    """Dotted-key lookups into one locale's YAML catalog."""

    def __init__(self, locale: str = "tr", locales_dir: str = LOCALES_DIR):
        self._locale = locale
        path = os.path.join(locales_dir, f"{locale}.yaml")
        try:
            with open(path, "r", encoding="utf-8") as f:
                self._tree = yaml.safe_load(f) or {}
        except FileNotFoundError:
            self._tree = {}

    @property
    def locale(self) -> str:
        return self._locale

    def get(self, key: str, default: str | None = None) -> str | None:
        node = self._tree
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node if isinstance(node, str) else default

    def label(self, group: str, value: str | None) -> str | None:
        """Label for a raw level/domain/action value, falling back to the value."""
        if value is None:
            return None
        return self.get(f"logging.{group}.{value}", value)

    def message(self, key: str) -> str:
        """Response message such as ``success.created``; the key if untranslated."""
        return self.get(f"response.{key}", key)
