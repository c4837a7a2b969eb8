import pytest

from skytrade_explorer.common.config import AppConfig, USA_BOUNDS, load_config, resolve_api_base_url
from skytrade_explorer.common.errors import ConfigurationError
from skytrade_explorer.common.models import AIR_SPACE


def _write(tmp_path, text: str):
    path = tmp_path / "config.yaml"
    path.write_text(text, encoding="utf-8")
    return path


def test_load_config_reads_sections(tmp_path):
    path = _write(
        tmp_path,
        """
api:
  base_url_env: MY_API
  max_points_per_request: 250
viewport:
  initial_zoom: 6
  tab: air_space
  initial_bounds: {north: 40, south: 30, east: -100, west: -110}
hexgrid:
  cache_size: 4
performance:
  enter_fps: 15
  exit_fps: 35
output:
  base_path: /tmp/out
""",
    )

    config = load_config(path)

    assert config.api.base_url_env == "MY_API"
    assert config.api.max_points_per_request == 250
    assert config.viewport.initial_zoom == 6.0
    assert config.viewport.tab == AIR_SPACE
    assert config.viewport.initial_bounds.north == 40.0
    assert config.hexgrid.cache_size == 4
    assert config.hexgrid.max_features == 2000
    assert config.performance.enter_fps == 15.0
    assert config.output.base_path == "/tmp/out"


def test_empty_file_gives_defaults(tmp_path):
    config = load_config(_write(tmp_path, ""))

    assert config == AppConfig()
    assert config.viewport.initial_bounds == USA_BOUNDS
    assert config.viewport.initial_zoom == 4.0


@pytest.mark.parametrize(
    "text",
    [
        "- just\n- a list\n",
        "viewport:\n  tab: balloons\n",
        "viewport:\n  initial_bounds: {north: 1, south: 0}\n",
        "performance:\n  enter_fps: 50\n  exit_fps: 40\n",
    ],
)
def test_invalid_config_is_rejected(tmp_path, text):
    with pytest.raises(ValueError):
        load_config(_write(tmp_path, text))


def test_resolve_api_base_url_strips_trailing_slash():
    config = AppConfig()

    url = resolve_api_base_url(config, {"SKYTRADE_API_URL": " https://api.example.com/ "})

    assert url == "https://api.example.com"


@pytest.mark.parametrize("environ", [{}, {"SKYTRADE_API_URL": ""}, {"SKYTRADE_API_URL": "   "}])
def test_missing_api_url_is_a_configuration_error(environ):
    with pytest.raises(ConfigurationError):
        resolve_api_base_url(AppConfig(), environ)
