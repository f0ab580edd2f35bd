from __future__ import annotations

from functools import lru_cache

from google.cloud import firestore
from config.settings import settings


@lru_cache(maxsize=1)
def get_firestore_client() -> firestore.Client:
    """
    One client per process; repositories are built per request and share it.
    Empty FIRESTORE_PROJECT_ID falls back to the ADC project.
    """
    return firestore.Client(
        project=settings.FIRESTORE_PROJECT_ID or None,
        database=settings.FIRESTORE_DATABASE or None,
    )
