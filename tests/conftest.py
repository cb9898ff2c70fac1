from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional

import pytest

from navlib.models import TabMetadata, WindowMetadata


def sales_order() -> WindowMetadata:
    """Header (186) with two child tabs; Lines (187) has a grandchild (189)."""
    return WindowMetadata(
        window_id="143",
        name="Sales Order",
        tabs=(
            TabMetadata(tab_id="186", level=0, entity_name="Order", name="Header"),
            TabMetadata(tab_id="187", level=1, parent_tab_id="186", entity_name="OrderLine", name="Lines"),
            TabMetadata(tab_id="188", level=1, parent_tab_id="186", entity_name="OrderTax", name="Taxes"),
            TabMetadata(tab_id="189", level=2, parent_tab_id="187", entity_name="LineTax", name="Line Tax"),
        ),
    )


def business_partner() -> WindowMetadata:
    return WindowMetadata(
        window_id="123",
        name="Business Partner",
        tabs=(TabMetadata(tab_id="220", level=0, entity_name="BusinessPartner", name="Partner"),),
    )


class MetadataCatalog:
    """Metadata provider over a fixed set of window definitions."""

    def __init__(self, *windows: WindowMetadata) -> None:
        self.windows: Dict[str, WindowMetadata] = {w.window_id: w for w in windows}

    def __call__(self, window_id: str) -> Optional[WindowMetadata]:
        return self.windows.get(window_id)


@pytest.fixture
def metadata() -> MetadataCatalog:
    return MetadataCatalog(sales_order(), business_partner())


CONFIG_YAML = """
version: 1
base_path: /window
storage:
  path: {storage}
windows:
  "143":
    name: Sales Order
    tabs:
      - {{ id: "186", name: Header, level: 0, entity_name: Order }}
      - {{ id: "187", name: Lines, level: 1, parent: "186", entity_name: OrderLine }}
      - {{ id: "188", name: Taxes, level: 1, parent: "186", entity_name: OrderTax }}
      - {{ id: "189", name: Line Tax, level: 2, parent: "187", entity_name: LineTax }}
  "123":
    name: Business Partner
    tabs:
      - {{ id: "220", name: Partner, level: 0, entity_name: BusinessPartner }}
""".strip()


def write_config(tmp_path: Path) -> Path:
    cfg = tmp_path / "config.yaml"
    cfg.write_text(CONFIG_YAML.format(storage=tmp_path / "state" / "storage.json"))
    return cfg


@pytest.fixture
def config_env(tmp_path, monkeypatch) -> Path:
    cfg = write_config(tmp_path)
    monkeypatch.setenv("NAVCTL_CONFIG", str(cfg))
    return cfg
