"""Provider factory exposing the goose bridge under named models."""

from __future__ import annotations

import logging
from typing import Any, NoReturn

from goosebridge.bridge.model import GooseLanguageModel
from goosebridge.config.models import GooseSettings
from goosebridge.constants import DEFAULT_BIN_PATH, DEFAULT_TIMEOUT_MS, GOOSE_MODELS


class NoSuchModelError(LookupError):
    """Raised for unsupported model types or invalid model ids."""

    def __init__(self, model_id: str, model_type: str) -> None:
        super().__init__(f"No such {model_type}: {model_id!r}")
        self.model_id = model_id
        self.model_type = model_type


class GooseProvider:
    """Creates :class:`GooseLanguageModel` instances sharing default settings.

    Callable as a shorthand for :meth:`language_model`::

        goose = create_goose(timeout_ms=60_000)
        model = goose("anthropic/claude-sonnet-4-5", session_name="demo")
    """

    specification_version = "v3"

    def __init__(
        self,
        defaults: GooseSettings,
        log: logging.Logger | None = None,
    ) -> None:
        self._defaults = defaults
        self._log = log

    @property
    def defaults(self) -> GooseSettings:
        return self._defaults

    def __call__(self, model_id: str, **settings: Any) -> GooseLanguageModel:
        return self.language_model(model_id, **settings)

    def language_model(self, model_id: str, **settings: Any) -> GooseLanguageModel:
        """Create a model; *settings* override the provider defaults."""
        if not isinstance(model_id, str) or not model_id:
            raise NoSuchModelError(str(model_id), "languageModel")
        model_id = GOOSE_MODELS.get(model_id, model_id)
        merged = self._defaults.merged(**settings)
        return GooseLanguageModel(model_id, merged, log=self._log)

    chat = language_model

    def embedding_model(self, model_id: str) -> NoReturn:
        raise NoSuchModelError(model_id, "embeddingModel")

    def image_model(self, model_id: str) -> NoReturn:
        raise NoSuchModelError(model_id, "imageModel")


def create_goose(
    *,
    bin_path: str = DEFAULT_BIN_PATH,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
    args: list[str] | None = None,
    log: logging.Logger | None = None,
    **default_settings: Any,
) -> GooseProvider:
    """Create a goose provider.

    Args:
        bin_path: Path to the goose binary.
        timeout_ms: Default per-call wall-clock budget.
        args: Extra CLI arguments appended to every call.
        log: Logger used by every model of this provider.
        **default_settings: Any other :class:`GooseSettings` field, used as
            defaults for every model (e.g. ``max_turns=500``).

    Raises:
        pydantic.ValidationError: If the settings are invalid.
    """
    defaults = GooseSettings(
        bin_path=bin_path,
        timeout_ms=timeout_ms,
        args=list(args or []),
        **default_settings,
    )
    return GooseProvider(defaults, log=log)


#: Default provider instance using goose from PATH.
goose = create_goose()
