"""Routers package."""

from . import (
    health,
    credits,
    creations,
    admin,
)
