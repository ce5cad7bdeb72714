"""Helpers for loading and validating declarative layout descriptions.

A description has exactly two groups:

    MemoryRegions:
      Flash: {address: 0x08000000, size: 1M, access: RX}
      Ram:   {address: 0x20000000, size: 128K, access: RWX}
    Sections:
      VectorTable: {region: Flash, offset: 0x0}
      Text:        {region: Flash}
      Data:        {vma: Ram, lma: Flash}
      Bss:         {region: Ram}
      Stack:       {region: Ram, size: 4K}

Sizes are resolved to byte counts here; the core only ever sees integers and
region names.
"""

import re
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import yaml  # type: ignore[import-untyped]

from ldscript.core.capabilities import RegionKind
from ldscript.core.exceptions import ConfigurationError
from ldscript.core.sections import SectionKind
from ldscript.utils.consts import SIZE_UNITS, ConstUtils

REGIONS_GROUP = "MemoryRegions"
SECTIONS_GROUP = "Sections"

REGION_ATTRIBUTES = ("address", "size", "access")
SECTION_ATTRIBUTES = ("region", "offset", "size", "vma", "lma", "kind")

# Kinds that keep VMA and LMA in one region
SINGLE_REGION_KINDS = (SectionKind.VECTOR_TABLE, SectionKind.BSS, SectionKind.STACK)
OFFSET_KINDS = (SectionKind.VECTOR_TABLE, SectionKind.CUSTOM)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
# Hex literals take no unit suffix: "0x10B" is a hex number, not 0x10 bytes
_HEX_SIZE = re.compile(r"^\s*(0[xX][0-9a-fA-F]+)\s*$")
_NUMBER_WITH_UNIT = re.compile(r"^\s*(\d+)\s*([A-Za-z]*)\s*$")
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


@dataclass(frozen=True)
class RegionConfig:
    name: str
    address: int
    size: int
    access: RegionKind


@dataclass(frozen=True)
class SectionConfig:
    name: str
    kind: SectionKind
    vma: str
    lma: str
    size: Optional[int] = None
    offset: Optional[int] = None


@dataclass(frozen=True)
class LayoutConfig:
    name: str
    regions: tuple[RegionConfig, ...]
    sections: tuple[SectionConfig, ...]


class _UniqueKeyLoader(yaml.SafeLoader):
    """SafeLoader that rejects duplicate mapping keys instead of keeping the last."""

    def construct_mapping(self, node, deep=False):
        seen: dict[Any, int] = {}
        for key_node, _value_node in node.value:
            if key_node.tag == "tag:yaml.org,2002:merge":
                continue
            key = self.construct_object(key_node, deep=deep)
            if not isinstance(key, (str, int)):
                continue
            line = key_node.start_mark.line + 1
            if key in seen:
                raise ConfigurationError(
                    config_key=str(key),
                    message=f"duplicate key at line {line} (first defined at line {seen[key]})",
                    details={"line": line},
                )
            seen[key] = line
        return super().construct_mapping(node, deep=deep)


# Configuration cache with thread safety
_LOADER_CACHE: dict[str, LayoutConfig] = {}
_CACHE_LOCK = threading.RLock()


def _targets_dir() -> Path:
    return Path(__file__).parent.parent / "targets"


def _get_config_path(target_name: str, path: Optional[str] = None) -> str:
    if path is None:
        # Bundled layouts live in ldscript/targets/{target_name}.yaml
        path = str(_targets_dir() / f"{target_name}.yaml")

    return path


def _load_yaml_file(path: Path) -> dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as fh:
            raw = yaml.load(fh, Loader=_UniqueKeyLoader)  # nosec B506 - SafeLoader subclass
    except ConfigurationError:
        raise
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Failed to parse config: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigurationError(f"Layout description in {path} must be a mapping")
    return raw


def to_snake_case(name: str) -> str:
    """VectorTable -> vector_table, CcramData -> ccram_data."""
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def _parse_int(value: Any, config_key: str) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(config_key, f"expected an integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text, 16) if text.lower().startswith("0x") else int(text, 10)
        except ValueError:
            pass
    raise ConfigurationError(config_key, f"expected an integer, got {value!r}")


def parse_address(value: Any, config_key: str) -> int:
    address = _parse_int(value, config_key)
    if not 0 <= address <= ConstUtils.ADDRESS_MAX:
        raise ConfigurationError(
            config_key, f"address 0x{address:X} is outside the 32-bit address space"
        )
    return address


def parse_size(value: Any, config_key: str) -> int:
    """Resolve a size literal to a byte count.

    Accepts 4096, "4096", "0x1000", "4K", "4 KiB", "4 kilobytes", "1M" and
    single-entry mappings such as {kilobytes: 4}.
    """
    if isinstance(value, dict):
        if len(value) != 1:
            raise ConfigurationError(config_key, "size mapping must have exactly one unit")
        unit, count = next(iter(value.items()))
        multiplier = SIZE_UNITS.get(str(unit).lower())
        if not unit or multiplier is None:
            raise ConfigurationError(config_key, f"unknown size unit {unit!r}")
        size = _parse_int(count, config_key) * multiplier
    elif isinstance(value, str) and _HEX_SIZE.match(value):
        size = _parse_int(value, config_key)
    elif isinstance(value, str):
        match = _NUMBER_WITH_UNIT.match(value)
        if match is None:
            raise ConfigurationError(config_key, f"invalid size {value!r}")
        number, unit = match.groups()
        multiplier = SIZE_UNITS.get(unit.lower())
        if multiplier is None:
            raise ConfigurationError(config_key, f"unknown size unit {unit!r}")
        size = _parse_int(number, config_key) * multiplier
    else:
        size = _parse_int(value, config_key)

    if size <= 0:
        raise ConfigurationError(config_key, "size must be positive")
    if size > ConstUtils.ADDRESS_SPACE_SIZE:
        raise ConfigurationError(config_key, "size exceeds the 32-bit address space")
    return size


def _check_attributes(
    attrs: Any, allowed: tuple[str, ...], config_key: str, what: str
) -> dict[str, Any]:
    if not isinstance(attrs, dict):
        raise ConfigurationError(config_key, f"{what} must be a mapping of attributes")
    for attr in attrs:
        if attr not in allowed:
            raise ConfigurationError(
                f"{config_key}.{attr}", f"Unknown {what} attribute with name `{attr}`"
            )
    return attrs


def _check_identifier(name: Any, config_key: str, what: str) -> str:
    if not isinstance(name, str) or not _IDENTIFIER.match(name):
        raise ConfigurationError(config_key, f"{name!r} is not a valid {what} identifier")
    return name


def _build_region_cfg(name: Any, attrs: Any) -> RegionConfig:
    key = f"{REGIONS_GROUP}.{name}"
    name = _check_identifier(name, key, "memory region")
    attrs = _check_attributes(attrs, REGION_ATTRIBUTES, key, "memory region")

    for required in REGION_ATTRIBUTES:
        if required not in attrs:
            raise ConfigurationError(key, f"missing required attribute `{required}`")

    try:
        access = RegionKind.from_string(str(attrs["access"]))
    except ValueError as exc:
        raise ConfigurationError(f"{key}.access", str(exc)) from exc

    return RegionConfig(
        name=name,
        address=parse_address(attrs["address"], f"{key}.address"),
        size=parse_size(attrs["size"], f"{key}.size"),
        access=access,
    )


def _infer_section_kind(name: str, attrs: dict[str, Any], key: str) -> SectionKind:
    if "kind" in attrs:
        try:
            return SectionKind.from_string(str(attrs["kind"]))
        except ValueError as exc:
            raise ConfigurationError(f"{key}.kind", str(exc)) from exc
    try:
        return SectionKind(name)
    except ValueError:
        return SectionKind.CUSTOM


def _region_ref(
    attrs: dict[str, Any], attr: str, regions: dict[str, RegionConfig], key: str
) -> str:
    ref = attrs[attr]
    if not isinstance(ref, str) or ref not in regions:
        raise ConfigurationError(f"{key}.{attr}", f"unknown memory region {ref!r}")
    return ref


def _build_section_cfg(
    raw_name: Any, attrs: Any, regions: dict[str, RegionConfig]
) -> SectionConfig:
    key = f"{SECTIONS_GROUP}.{raw_name}"
    raw_name = _check_identifier(raw_name, key, "section")
    attrs = _check_attributes(attrs, SECTION_ATTRIBUTES, key, "section")
    name = to_snake_case(raw_name)
    kind = _infer_section_kind(name, attrs, key)

    has_region = "region" in attrs
    has_vma, has_lma = "vma" in attrs, "lma" in attrs
    if has_region and not (has_vma or has_lma):
        vma = lma = _region_ref(attrs, "region", regions, key)
    elif has_vma and has_lma and not has_region:
        vma = _region_ref(attrs, "vma", regions, key)
        lma = _region_ref(attrs, "lma", regions, key)
    else:
        raise ConfigurationError(key, "Section should have either (vma, lma) or region")

    if kind in SINGLE_REGION_KINDS and vma != lma:
        raise ConfigurationError(key, f"{kind.value} sections cannot be copied at boot")

    offset = None
    if "offset" in attrs:
        if kind not in OFFSET_KINDS:
            raise ConfigurationError(f"{key}.offset", f"{kind.value} sections do not take an offset")
        offset = _parse_int(attrs["offset"], f"{key}.offset")
        if offset < 0:
            raise ConfigurationError(f"{key}.offset", "offset must not be negative")
        if offset >= regions[vma].size:
            raise ConfigurationError(
                f"{key}.offset", f"offset 0x{offset:X} is outside region '{vma}'"
            )

    size = parse_size(attrs["size"], f"{key}.size") if "size" in attrs else None
    if kind is SectionKind.STACK and size is None:
        raise ConfigurationError(key, "stack sections need a size")

    return SectionConfig(name=name, kind=kind, vma=vma, lma=lma, size=size, offset=offset)


def _parse_layout_cfg_from_dict(raw: dict[str, Any], name: str = "layout") -> LayoutConfig:
    for group in raw:
        if group not in (REGIONS_GROUP, SECTIONS_GROUP):
            raise ConfigurationError(
                str(group), f"Expected either `{REGIONS_GROUP}` or `{SECTIONS_GROUP}`"
            )
    for group in (REGIONS_GROUP, SECTIONS_GROUP):
        if group not in raw:
            raise ConfigurationError(group, f"`{group}` is a required field")
        if not isinstance(raw[group], dict):
            raise ConfigurationError(group, f"`{group}` must be a mapping")

    regions = tuple(
        _build_region_cfg(region_name, attrs)
        for region_name, attrs in raw[REGIONS_GROUP].items()
    )
    regions_by_name = {region.name: region for region in regions}

    sections: list[SectionConfig] = []
    seen: dict[str, str] = {}
    for section_name, attrs in raw[SECTIONS_GROUP].items():
        section = _build_section_cfg(section_name, attrs, regions_by_name)
        if section.name in seen:
            raise ConfigurationError(
                f"{SECTIONS_GROUP}.{section_name}",
                f"section name clashes with `{seen[section.name]}`",
            )
        seen[section.name] = section_name
        sections.append(section)

    return LayoutConfig(name=name, regions=regions, sections=tuple(sections))


def parse_layout_config(raw: dict[str, Any], name: str = "layout") -> LayoutConfig:
    """Validate an already-parsed description (e.g. from JSON or code)."""
    if not isinstance(raw, dict):
        raise ConfigurationError("Layout description must be a mapping")
    return _parse_layout_cfg_from_dict(raw, name=name)


def load_config(target_name: str, path: Optional[str] = None) -> LayoutConfig:
    """Load and validate a layout description from a YAML file.

    Args:
        target_name: Target identifier (e.g., 'stm32f4', 'tm4c123'), also used
            as the layout name.
        path: Optional path to a YAML description. If None, load the bundled
            ldscript/targets/{target_name}.yaml.

    Returns:
        LayoutConfig instance

    Raises:
        ConfigurationError: on parse or validation errors
    """

    p = Path(_get_config_path(target_name=target_name, path=path))
    raw = _load_yaml_file(p)

    return _parse_layout_cfg_from_dict(raw=raw, name=target_name)


def get_config(target_name: str) -> LayoutConfig:
    """Return the bundled config for target_name, loading and caching if necessary.

    Only the immutable LayoutConfig is cached; every MemoryLayout built from
    it is a fresh instance.

    THREAD SAFETY: This function is thread-safe.
    """
    with _CACHE_LOCK:
        if target_name not in _LOADER_CACHE:
            _LOADER_CACHE[target_name] = load_config(target_name=target_name)
        return _LOADER_CACHE[target_name]


def clear_config_cache() -> None:
    """Clear all cached configurations."""
    with _CACHE_LOCK:
        _LOADER_CACHE.clear()


def list_available_targets() -> list[str]:
    """Names of the bundled target layouts."""
    return sorted(p.stem for p in _targets_dir().glob("*.yaml"))
