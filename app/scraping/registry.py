"""
Scraper class registry and factory.
"""

from __future__ import annotations

import importlib
from collections.abc import Iterable, Mapping

from app.scraping.base import ScraperBase
from app.scraping.config.models import ScanSourceConfig, ScrapeSettings
from app.scraping.scrapers import BookingComScraper, ConfigurableAvailabilityScraper, OfferApiScraper
from app.scraping.storage.base import ScrapeEventLog


class ScraperRegistry:
    """
    Scraper registry supporting built-ins and dynamic import paths.
    """

    def __init__(self, registrations: Mapping[str, type[ScraperBase]] | None = None) -> None:
        builtins: dict[str, type[ScraperBase]] = {
            "configurable": ConfigurableAvailabilityScraper,
            "booking_com": BookingComScraper,
            "offer_api": OfferApiScraper,
        }
        if registrations:
            builtins.update(registrations)
        self._registrations = builtins

    def register(self, *, scraper_type: str, scraper_class: type[ScraperBase]) -> None:
        self._registrations[scraper_type.strip().lower()] = scraper_class

    def create_scraper(
        self,
        *,
        config: ScanSourceConfig,
        settings: ScrapeSettings,
        event_log: ScrapeEventLog | None = None,
    ) -> ScraperBase:
        scraper_class = self.resolve_scraper_class(config)
        return scraper_class(config=config, settings=settings, event_log=event_log)

    def resolve_scraper_class(self, config: ScanSourceConfig) -> type[ScraperBase]:
        if config.scraper_class:
            return self._load_dynamic_class(config.scraper_class)

        resolved = self._registrations.get(config.scraper_type)
        if resolved is None:
            allowed = ", ".join(sorted(self._registrations.keys()))
            raise ValueError(
                f"Unknown scraper_type='{config.scraper_type}' for source='{config.name}'. "
                f"Allowed types: {allowed}."
            )
        return resolved

    @staticmethod
    def _load_dynamic_class(path: str) -> type[ScraperBase]:
        if ":" not in path:
            raise ValueError(f"Invalid scraper_class '{path}'. Use 'module.path:ClassName'.")

        module_path, class_name = path.split(":", 1)
        module = importlib.import_module(module_path)
        loaded = getattr(module, class_name, None)
        if loaded is None:
            raise ValueError(f"Unable to resolve scraper class '{path}'.")
        if not isinstance(loaded, type) or not issubclass(loaded, ScraperBase):
            raise ValueError(f"Class '{path}' must inherit from ScraperBase.")
        return loaded


class SourceScraperFactory:
    """
    Builds a fresh scraper for a named scan source on every call.
    """

    def __init__(
        self,
        *,
        sources: Iterable[ScanSourceConfig],
        settings: ScrapeSettings,
        event_log: ScrapeEventLog | None = None,
        registry: ScraperRegistry | None = None,
    ) -> None:
        self._sources = {source.name.lower(): source for source in sources if source.enabled}
        self._settings = settings
        self._event_log = event_log
        self._registry = registry or ScraperRegistry()

    def source_names(self) -> list[str]:
        return sorted(source.name for source in self._sources.values())

    def source(self, source_name: str) -> ScanSourceConfig:
        config = self._sources.get(source_name.strip().lower())
        if config is None:
            raise ValueError(f"Unknown or disabled scan source '{source_name}'.")
        return config

    def __call__(self, source_name: str) -> ScraperBase:
        return self._registry.create_scraper(
            config=self.source(source_name),
            settings=self._settings,
            event_log=self._event_log,
        )
