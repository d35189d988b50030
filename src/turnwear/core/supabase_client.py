"""Supabase client initialization.

Provides a lazily created, process-wide Supabase client for the durable
store, blob store and identity adapters.
"""

from __future__ import annotations

import logging

from supabase import Client, create_client

from turnwear.core.config import TurnwearConfig

logger = logging.getLogger(__name__)


class SupabaseClient:
    """Singleton wrapper for the Supabase client."""

    _instance: Client | None = None

    @classmethod
    def get_client(cls, config: TurnwearConfig) -> Client:
        """Get or create the Supabase client instance.

        Args:
            config: Supplies ``supabase_url`` and ``supabase_key``.

        Returns:
            Supabase client instance

        Raises:
            ValueError: If the Supabase credentials are not configured
        """
        if cls._instance is None:
            if not config.supabase_url or not config.supabase_key:
                raise ValueError(
                    "Missing Supabase credentials. Please set TURNWEAR_SUPABASE_URL and "
                    "TURNWEAR_SUPABASE_KEY environment variables."
                )

            cls._instance = create_client(config.supabase_url, config.supabase_key)
            logger.info("Supabase client initialized successfully")

        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset the client instance (useful for testing)."""
        cls._instance = None


def get_supabase(config: TurnwearConfig) -> Client:
    """Get the Supabase client instance."""
    return SupabaseClient.get_client(config)
