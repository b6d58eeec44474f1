import json

import pytest

from etwscan.core.config import Config
from etwscan.scan.layouts import (
    get_layout,
    layout_from_config,
    list_layouts,
    load_layout_file,
    normalize_layout_name,
)


def test_normalize_layout_name():
    assert normalize_layout_name("Win11") == "win11"
    assert normalize_layout_name("windows 11") == "win11"
    assert normalize_layout_name("win10_1909") == "win10-1507"
    assert normalize_layout_name("Windows-10-22H2") == "win10"
    assert normalize_layout_name("GENERIC") == "generic"


def test_generic_layout_priority_order():
    lay = get_layout()
    assert lay.pid_offsets == [0x2E8, 0x440, 0x448, 0x2E0]
    assert lay.image_name_offsets == [0x5A8, 0x450, 0x468]
    assert lay.consumer_list_offset == 0x158
    assert lay.image_name_length == 15


def test_unknown_layout():
    with pytest.raises(KeyError):
        get_layout("win95")


def test_get_layout_returns_a_copy():
    get_layout("win11").pid_offsets.append(0x10)
    assert 0x10 not in get_layout("win11").pid_offsets


def test_list_layouts_sorted():
    names = [lay.name for lay in list_layouts()]
    assert names == sorted(names)
    assert "generic" in names


def test_layout_file_extends_base(tmp_path):
    path = tmp_path / "lab-build.json"
    path.write_text(json.dumps({
        "base": "win11",
        "pid_offsets": ["0x1d0", 0x440],
        "image_name_offsets": ["0x338"],
    }))

    lay = load_layout_file(path)

    assert lay.name == "lab-build"
    assert lay.pid_offsets == [0x1D0, 0x440]
    assert lay.image_name_offsets == [0x338]
    assert lay.logger_type == "_WMI_LOGGER_CONTEXT"


def test_layout_from_config_applies_overrides(tmp_path):
    lay = layout_from_config(Config(layout="win10", pid_ceiling=0x10000, kernel_module="ntkrnlmp"))
    assert lay.name == "win10"
    assert lay.pid_ceiling == 0x10000
    assert lay.module == "ntkrnlmp"

    path = tmp_path / "custom.json"
    path.write_text(json.dumps({"name": "custom", "pid_offsets": [0x2E8]}))
    assert layout_from_config(Config(layout="win10", layout_file=path)).name == "custom"


def test_layout_file_module_kept_unless_overridden(tmp_path):
    path = tmp_path / "checked.json"
    path.write_text(json.dumps({"base": "win11", "module": "ntkrnlmp"}))

    assert layout_from_config(Config(layout_file=path)).module == "ntkrnlmp"
    assert layout_from_config(Config(layout_file=path, kernel_module="nt")).module == "nt"
    assert layout_from_config(Config()).module == "nt"


def test_layout_file_must_be_an_object(tmp_path):
    path = tmp_path / "offsets.json"
    path.write_text("[744, 1088]")
    with pytest.raises(ValueError):
        load_layout_file(path)
