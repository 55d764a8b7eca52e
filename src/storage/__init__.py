"""저장소 모듈 - 오버레이/배수/변경 요청/감사 로그/캐리어 요금"""
from .repository import LocalRepository
from .supabase_repository import SupabaseRepository, get_repository

__all__ = [
    "LocalRepository",
    "SupabaseRepository",
    "get_repository",
]
