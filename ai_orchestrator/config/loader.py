import dataclasses
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from ai_orchestrator.llm.route_types import ROUTE_CONFIGS, RetrievalConfig, RouteConfig
from ai_orchestrator.schemas import ModelConfig, RouteType

logger = logging.getLogger(__name__)

_ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::-(.*?))?\}")

_ROUTE_FIELDS = {"description", "primary_model", "fallback_chain", "reranking", "temperature", "max_tokens"}


@dataclass
class RegistryOverrides:
    models: dict[str, ModelConfig] = field(default_factory=dict)
    routes: dict[RouteType, RouteConfig] = field(default_factory=dict)
    specialized: dict[str, str] = field(default_factory=dict)


def _substitute_env_vars(value: str) -> str:
    def _replace(match: re.Match[str]) -> str:
        var_name = match.group(1)
        default = match.group(2)
        env_val = os.environ.get(var_name)
        if env_val is not None:
            return env_val
        return default if default is not None else ""

    return _ENV_VAR_PATTERN.sub(_replace, value)


def _substitute_recursive(obj: Any) -> Any:
    if isinstance(obj, str):
        return _substitute_env_vars(obj)
    if isinstance(obj, dict):
        return {k: _substitute_recursive(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_substitute_recursive(item) for item in obj]
    return obj


def _parse_models(raw_models: Any, config_path: str) -> dict[str, ModelConfig]:
    if not isinstance(raw_models, dict):
        logger.warning("Model config 'models' is not a mapping: %s", config_path)
        return {}

    models: dict[str, ModelConfig] = {}
    for key, entry in raw_models.items():
        try:
            models[str(key)] = ModelConfig.model_validate(entry)
        except ValidationError as e:
            logger.warning("Skipping invalid model entry %s in %s: %s", key, config_path, e)
    return models


def _parse_route(route: RouteType, entry: dict[str, Any]) -> RouteConfig:
    base = ROUTE_CONFIGS[route]
    updates: dict[str, Any] = {k: v for k, v in entry.items() if k in _ROUTE_FIELDS}
    if "fallback_chain" in updates:
        updates["fallback_chain"] = tuple(str(m) for m in updates["fallback_chain"] or ())
    if "temperature" in updates:
        updates["temperature"] = float(updates["temperature"])
    if "max_tokens" in updates:
        updates["max_tokens"] = int(updates["max_tokens"])
    if isinstance(entry.get("retrieval"), dict):
        updates["retrieval"] = dataclasses.replace(base.retrieval, **entry["retrieval"])
    return dataclasses.replace(base, **updates)


def _parse_routes(raw_routes: Any, config_path: str) -> dict[RouteType, RouteConfig]:
    if not isinstance(raw_routes, dict):
        logger.warning("Model config 'routes' is not a mapping: %s", config_path)
        return {}

    routes: dict[RouteType, RouteConfig] = {}
    for name, entry in raw_routes.items():
        try:
            route = RouteType(name)
        except ValueError:
            logger.warning("Skipping unknown route %r in %s", name, config_path)
            continue
        if not isinstance(entry, dict):
            logger.warning("Skipping route %s in %s: entry is not a mapping", name, config_path)
            continue
        try:
            routes[route] = _parse_route(route, entry)
        except (TypeError, ValueError) as e:
            logger.warning("Skipping invalid route %s in %s: %s", name, config_path, e)
    return routes


def load_registry_config(config_path: str | None = None) -> RegistryOverrides | None:
    """Load model, route and specialized-model overrides from a YAML file.

    Returns None when the file is missing, unreadable or holds no usable
    ``models`` section; callers then keep the built-in tables.
    """
    if not config_path:
        return None

    path = Path(config_path)
    if not path.is_file():
        logger.warning("Model config file not found: %s", config_path)
        return None

    try:
        raw = path.read_text(encoding="utf-8")
        data = yaml.safe_load(raw)
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Failed to load model config from %s: %s", config_path, e)
        return None

    if not isinstance(data, dict) or "models" not in data:
        logger.warning("Model config missing 'models' key: %s", config_path)
        return None

    data = _substitute_recursive(data)
    overrides = RegistryOverrides(
        models=_parse_models(data["models"], config_path),
        routes=_parse_routes(data.get("routes") or {}, config_path),
    )

    specialized = data.get("specialized") or {}
    if isinstance(specialized, dict):
        overrides.specialized = {str(k): str(v) for k, v in specialized.items()}
    else:
        logger.warning("Model config 'specialized' is not a mapping: %s", config_path)

    if not overrides.models:
        logger.warning("No valid models loaded from %s", config_path)
        return None

    logger.info(
        "Loaded %d model(s) and %d route override(s) from YAML config: %s",
        len(overrides.models),
        len(overrides.routes),
        config_path,
    )
    return overrides
