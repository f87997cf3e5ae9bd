"""Bundled review recipes. Shipped as package data next to the scraper modules."""
