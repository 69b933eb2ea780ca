from __future__ import annotations

import textwrap

from goldfinger.__main__ import build_pollers
from goldfinger.config import load_config

CONFIG_YAML = """
weather:
  office: "BOX"
  gridpoint: [71, 90]
  poll_interval_seconds: 300
transit:
  stop_ids: {stop_ids}
display:
  kind: "mock"
  width: 250
  height: 122
logging:
  level: "INFO"
"""


def _config(tmp_path, stop_ids: str):
    path = tmp_path / "config.yaml"
    path.write_text(textwrap.dedent(CONFIG_YAML.format(stop_ids=stop_ids)))
    return load_config(str(path))


def test_build_pollers_with_transit(tmp_path) -> None:
    weather_poller, transit_poller = build_pollers(_config(tmp_path, '["5483"]'))

    assert weather_poller.name == "weather"
    assert transit_poller is not None
    assert transit_poller.name == "transit"


def test_build_pollers_without_transit(tmp_path) -> None:
    _, transit_poller = build_pollers(_config(tmp_path, "[]"))

    assert transit_poller is None
