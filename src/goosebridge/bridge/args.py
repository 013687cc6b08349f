"""Command-line and environment assembly for ``goose run``."""

from __future__ import annotations

import os
from collections.abc import Mapping

from goosebridge.bridge.helpers import split_model_id
from goosebridge.bridge.request import GenerationRequest
from goosebridge.config.models import GooseSettings
from goosebridge.constants import (
    API_KEY_ENV_VARS,
    BASE_RUN_ARGS,
    ENV_DISABLE_KEYRING,
    ENV_MAX_TURNS,
    ENV_MODEL,
    ENV_PROVIDER,
)


def build_cli_args(request: GenerationRequest) -> list[str]:
    """Build the ``goose`` argument list for *request*.

    The order is fixed: base flags, ``--system``, ``-t``, ``--name``,
    ``--resume``, then the caller's extra arguments verbatim.
    """
    args = list(BASE_RUN_ARGS)

    if request.system_prompt:
        args.extend(["--system", request.system_prompt])

    args.extend(["-t", request.user_prompt])

    if request.session.name:
        args.extend(["--name", request.session.name])

    # Emitted even without --name; goose decides whether that is valid.
    if request.session.resume:
        args.append("--resume")

    args.extend(request.extra_args)
    return args


def resolve_provider(
    settings: GooseSettings, model_id: str
) -> tuple[str, str] | None:
    """Pick the upstream provider/model pair, if the caller chose one.

    Explicit ``provider``/``model`` settings win over a ``provider/model``
    model id.
    """
    if settings.provider is not None and settings.model is not None:
        return settings.provider, settings.model
    return split_model_id(model_id)


def build_env(
    settings: GooseSettings,
    model_id: str,
    base: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Build the environment for the goose subprocess.

    Starts from *base* (``os.environ`` by default), disables interactive
    setup, then adds provider/model selection, the provider's API key and
    the turn budget when configured.  ``settings.env`` is applied last.
    """
    env = dict(os.environ if base is None else base)
    env[ENV_DISABLE_KEYRING] = "1"

    pair = resolve_provider(settings, model_id)
    if pair is not None:
        provider, model = pair
        env[ENV_PROVIDER] = provider
        env[ENV_MODEL] = model

        key_var = API_KEY_ENV_VARS.get(provider)
        if key_var is not None and settings.api_key is not None:
            env[key_var] = settings.api_key.get_secret_value()

    if settings.max_turns is not None:
        env[ENV_MAX_TURNS] = str(settings.max_turns)

    env.update(settings.env)
    return env
