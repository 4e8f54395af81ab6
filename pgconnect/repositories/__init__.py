from pgconnect.repositories.base import Repository
from pgconnect.repositories.filters import build_where

__all__ = ["Repository", "build_where"]
