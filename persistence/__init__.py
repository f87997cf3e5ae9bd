"""
Persistence layer for scraped reviews.

This package provides the write side of a scrape run: a Supabase
(PostgREST) table for deployments and a JSON store for local runs.
"""

from .review_store import JSONReviewStore, ReviewStore, StoreError, SupabaseReviewStore

__all__ = ['JSONReviewStore', 'ReviewStore', 'StoreError', 'SupabaseReviewStore']
