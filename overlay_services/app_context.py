from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Union

from overlay_services.display_service import QtDisplayService, StaticDisplayService
from overlay_services.image_decoder import QtImageDecoder
from overlay_services.settings_service import HttpSettingsService, JsonSettingsService
from overlay_settings.config_store import ConfigStore
from overlay_settings.logging_utils import configure_logging
from overlay_settings.model import Display
from overlay_settings.runtime_config import RuntimeConfig

_LOGGER = logging.getLogger("RunAnime.Services")


@dataclass
class AppContext:
    config: RuntimeConfig
    settings_service: Union[JsonSettingsService, HttpSettingsService]
    display_service: Union[QtDisplayService, StaticDisplayService, HttpSettingsService]
    image_decoder: Optional[QtImageDecoder]
    store: ConfigStore


def build_app_context(
    config: RuntimeConfig,
    *,
    use_qt: bool = True,
    static_displays: Sequence[Display] = (),
    configure_logs: bool = False,
) -> AppContext:
    """Wire the collaborators selected by ``config`` into a :class:`ConfigStore`.

    With a server URL the companion server is both persistence and display
    source; otherwise the JSON file is used and displays come from Qt (or the
    static list when ``use_qt`` is false).
    """

    if configure_logs:
        configure_logging(debug=config.debug, retention=config.log_retention)

    settings_service: Union[JsonSettingsService, HttpSettingsService]
    display_service: Union[QtDisplayService, StaticDisplayService, HttpSettingsService]
    if config.server_url:
        http_service = HttpSettingsService(config.server_url)
        settings_service = http_service
        display_service = http_service
    else:
        settings_service = JsonSettingsService(config.settings_path)
        display_service = QtDisplayService() if use_qt else StaticDisplayService(static_displays)

    image_decoder = QtImageDecoder(config.uploads_dir) if use_qt else None
    store = ConfigStore(settings_service, display_service, image_decoder=image_decoder)
    _LOGGER.debug(
        "App context built: settings=%s displays=%s decoder=%s",
        type(settings_service).__name__,
        type(display_service).__name__,
        "qt" if image_decoder is not None else "none",
    )
    return AppContext(
        config=config,
        settings_service=settings_service,
        display_service=display_service,
        image_decoder=image_decoder,
        store=store,
    )
