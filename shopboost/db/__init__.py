"""Supabase-backed collaborators: relational store and file storage."""

from shopboost.db.storage import IntakeFileStorage
from shopboost.db.store import ShopStore, SupabaseShopStore

__all__ = ["IntakeFileStorage", "ShopStore", "SupabaseShopStore"]
