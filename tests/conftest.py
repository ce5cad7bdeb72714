"""
Pytest configuration and shared fixtures for the ldscript test suite.
"""

import sys
import tempfile
from pathlib import Path

import pytest
import yaml

# Ensure project root is on PYTHONPATH so 'ldscript' can be imported
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from ldscript.core.layout import MemoryLayout  # noqa: E402
from ldscript.utils.consts import kilobytes  # noqa: E402


@pytest.fixture
def temp_yaml_file():
    """
    Fixture that provides a temporary YAML file.

    Yields:
        Path: Path to the temporary YAML file
    """
    with tempfile.NamedTemporaryFile(
        mode="w",
        suffix=".yaml",
        delete=False,
    ) as f:
        temp_path = Path(f.name)

    yield temp_path

    # Cleanup
    if temp_path.exists():
        temp_path.unlink()


MEMORY_REGIONS_CFG = {
    "Flash": {"address": 0x08000000, "size": "512K", "access": "RX"},
    "Ram": {"address": 0x20000000, "size": "128K", "access": "RWX"},
    "CcRam": {"address": 0x10000000, "size": {"kilobytes": 64}, "access": "RW"},
}

SECTIONS_CFG = {
    "VectorTable": {"region": "Flash", "offset": 0x0, "size": 0x200},
    "Text": {"region": "Flash"},
    "Ramfunc": {"vma": "Ram", "lma": "Flash", "size": "4K"},
    "Data": {"vma": "Ram", "lma": "Flash"},
    "CcramData": {"vma": "CcRam", "lma": "Flash", "kind": "data"},
    "Bss": {"region": "Ram"},
    "Stack": {"region": "Ram", "size": "4K"},
}


@pytest.fixture
def valid_layout_config_dict():
    """
    Fixture providing a complete valid layout description dictionary.
    """
    return {
        "MemoryRegions": {name: dict(attrs) for name, attrs in MEMORY_REGIONS_CFG.items()},
        "Sections": {name: dict(attrs) for name, attrs in SECTIONS_CFG.items()},
    }


@pytest.fixture
def minimal_layout_config_dict():
    """
    Fixture providing a minimal valid layout description dictionary.

    Returns:
        dict: One flash region holding only the vector table
    """
    return {
        "MemoryRegions": {
            "flash": {"address": 0, "size": 1024, "access": "RX"},
        },
        "Sections": {
            "VectorTable": {"region": "flash"},
        },
    }


@pytest.fixture
def temp_config_yaml_file(temp_yaml_file, valid_layout_config_dict):
    """
    Fixture that creates a temporary YAML file with a valid description.

    Args:
        temp_yaml_file: Path object for temporary file
        valid_layout_config_dict: Valid description dictionary

    Yields:
        Path: Path to the temporary YAML file with a valid description
    """
    with open(temp_yaml_file, "w", encoding="utf-8") as f:
        yaml.dump(valid_layout_config_dict, f)

    yield temp_yaml_file


@pytest.fixture
def layout():
    """Fresh, empty layout."""
    return MemoryLayout("test")


@pytest.fixture
def cortex_m_layout():
    """
    Fixture providing a populated flash + RAM layout.

    Returns:
        tuple: (layout, flash, ram)
    """
    layout = MemoryLayout("cortex_m")
    flash = layout.add_rx_region("flash", 0x00000000, kilobytes(32))
    ram = layout.add_rwx_region("ram", 0x20000000, kilobytes(256))
    layout.vector_table(flash, offset=0, size=0x100)
    layout.text(flash, flash)
    layout.data(ram, flash)
    layout.bss(ram)
    layout.stack(ram, kilobytes(2))
    return layout, flash, ram


def pytest_configure(config):
    """
    Hook for initial pytest configuration.

    Used to add custom markers and configuration.
    """
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests",
    )
    config.addinivalue_line("markers", "unit: marks tests as unit tests")
