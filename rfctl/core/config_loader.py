"""Accessory configuration loading and validation for YAML accessory files."""

from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from rfctl.core.errors import ConfigLoadError, ConfigValidationError
from rfctl.core.model import AccessoryConfig, LightConfig, SwitchConfig, WindowCoveringConfig

_HEX_RE = re.compile(r"^[0-9a-f]+$")
_MAX_PAYLOAD_BYTES = 512
LOGGER = logging.getLogger(__name__)

_SWITCH_OPTIONS = {
    "pingIPAddress": "ping_ip_address",
    "pingUseArp": "ping_use_arp",
    "pingIPAddressStateOnly": "ping_state_only",
    "pingFrequency": "ping_frequency",
    "pingGrace": "ping_grace",
    "onDuration": "on_duration",
    "offDuration": "off_duration",
    "enableAutoOn": "enable_auto_on",
    "enableAutoOff": "enable_auto_off",
    "stateless": "stateless",
    "allowResend": "allow_resend",
}

_LIGHT_OPTIONS = {
    **_SWITCH_OPTIONS,
    "onDelay": "on_delay",
    "defaultBrightness": "default_brightness",
    "defaultColorTemperature": "default_color_temperature",
    "useLastKnownBrightness": "use_last_known_brightness",
    "useLastKnownColorTemperature": "use_last_known_color_temperature",
}

_WINDOW_COVERING_OPTIONS = {
    "totalDurationOpen": "total_duration_open",
    "totalDurationClose": "total_duration_close",
    "initialDelay": "initial_delay",
    "sendStopAt0": "send_stop_at_0",
    "sendStopAt100": "send_stop_at_100",
    "allowResend": "allow_resend",
}


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys and keeps on/off as strings."""


UniqueKeyLoader.yaml_implicit_resolvers = {
    key: list(value) for key, value in yaml.SafeLoader.yaml_implicit_resolvers.items()
}

for first_char, mappings in list(UniqueKeyLoader.yaml_implicit_resolvers.items()):
    UniqueKeyLoader.yaml_implicit_resolvers[first_char] = [
        (tag, regexp)
        for tag, regexp in mappings
        if tag != "tag:yaml.org,2002:bool"
    ]


def _construct_mapping(loader: UniqueKeyLoader, node: yaml.Node, deep: bool = False) -> dict[str, Any]:
    mapping: dict[str, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise ConfigValidationError(f"Duplicate key '{key}' in YAML document")
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)
UniqueKeyLoader.add_implicit_resolver(
    "tag:yaml.org,2002:bool",
    re.compile(r"^(?:true|false)$"),
    list("tf"),
)


@dataclass(frozen=True)
class LoadedAccessories:
    configs: dict[str, AccessoryConfig]
    warnings: tuple[str, ...]


def _load_schema_validator() -> Any:
    schema_text = resources.files("rfctl.schemas").joinpath("accessories.schema.json").read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def default_config_path() -> Path:
    xdg_config = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return xdg_config / "rfctl/accessories.yaml"


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigLoadError(f"Could not read accessory file {path}: {exc}") from exc

    try:
        loaded = yaml.load(content, Loader=UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise ConfigValidationError(f"Invalid YAML in {path}: {exc}") from exc

    if not isinstance(loaded, dict):
        raise ConfigValidationError(f"Accessory file {path} must contain a mapping at root")
    return loaded


def normalize_hex(value: str, *, context: str) -> bytes:
    normalized = value.strip().lower().replace(" ", "")
    if len(normalized) == 0:
        raise ConfigValidationError(f"{context} must not be empty")
    if len(normalized) % 2 != 0:
        raise ConfigValidationError(f"{context} must have even-length hex")
    if not _HEX_RE.match(normalized):
        raise ConfigValidationError(f"{context} must contain only [0-9a-f]")
    payload = bytes.fromhex(normalized)
    if len(payload) > _MAX_PAYLOAD_BYTES:
        raise ConfigValidationError(
            f"{context} exceeds max payload size {_MAX_PAYLOAD_BYTES} bytes"
        )
    return payload


def _build_data(doc: dict[str, Any]) -> dict[str, Any]:
    data: dict[str, Any] = {}
    for key, value in doc.get("data", {}).items():
        context = f"{doc['name']}.data.{key}"
        if key.endswith("Steps"):
            if not isinstance(value, int):
                raise ConfigValidationError(f"{context} must be a positive integer")
            data[key] = value
        elif isinstance(value, str):
            data[key] = normalize_hex(value, context=context)
        else:
            raise ConfigValidationError(f"{context} must be a hex string")
    return data


def _options(doc: dict[str, Any], mapping: dict[str, str]) -> dict[str, Any]:
    return {field: doc[key] for key, field in mapping.items() if key in doc}


def _legacy_auto_flags(doc: dict[str, Any], options: dict[str, Any], warnings: list[str]) -> None:
    for legacy, field, current in (
        ("disableAutomaticOn", "enable_auto_on", "enableAutoOn"),
        ("disableAutomaticOff", "enable_auto_off", "enableAutoOff"),
    ):
        if legacy not in doc:
            continue
        warning = f"{doc['name']}: '{legacy}' is deprecated, use '{current}'"
        LOGGER.warning(warning)
        warnings.append(warning)
        if current not in doc:
            options[field] = not doc[legacy]


def _history_enabled(doc: dict[str, Any]) -> bool:
    return doc.get("history") is True or doc.get("noHistory") is False


def _build_accessory(doc: dict[str, Any], warnings: list[str]) -> AccessoryConfig:
    name = doc["name"]
    data = _build_data(doc)
    history = _history_enabled(doc)
    accessory_type = doc["type"]

    if accessory_type == "window-covering":
        return WindowCoveringConfig(
            name=name,
            data=data,
            history=history,
            **_options(doc, _WINDOW_COVERING_OPTIONS),
        )

    if accessory_type == "light":
        options = _options(doc, _LIGHT_OPTIONS)
        _legacy_auto_flags(doc, options, warnings)
        return LightConfig(
            name=name,
            data=data,
            history=history,
            exclusives=tuple(doc.get("exclusives", ())),
            **options,
        )

    if accessory_type == "switch":
        options = _options(doc, _SWITCH_OPTIONS)
        _legacy_auto_flags(doc, options, warnings)
        return SwitchConfig(name=name, data=data, history=history, **options)

    raise ConfigValidationError(f"Unsupported accessory type '{accessory_type}' for '{name}'")


def load_accessories(path: Path | str | None = None) -> LoadedAccessories:
    source = Path(path) if path is not None else default_config_path()
    doc = _read_yaml(source)

    validator = _load_schema_validator()
    try:
        validator.validate(doc)
    except ValidationError as exc:
        where_path = ".".join(str(p) for p in exc.path)
        where = f" ({where_path})" if where_path else ""
        raise ConfigValidationError(f"Schema validation failed for {source}{where}: {exc.message}") from exc

    configs: dict[str, AccessoryConfig] = {}
    warnings: list[str] = []
    for accessory_doc in doc["accessories"]:
        config = _build_accessory(accessory_doc, warnings)
        if config.name in configs:
            raise ConfigValidationError(f"Duplicate accessory name '{config.name}' in {source}")
        configs[config.name] = config

    return LoadedAccessories(configs=configs, warnings=tuple(warnings))
