"""
Scraper subclass exports.
"""

from app.scraping.scrapers.booking_com_scraper import BookingComScraper
from app.scraping.scrapers.configurable_scraper import ConfigurableAvailabilityScraper
from app.scraping.scrapers.offer_api_scraper import OfferApiScraper

__all__ = ["BookingComScraper", "ConfigurableAvailabilityScraper", "OfferApiScraper"]
