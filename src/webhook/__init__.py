"""캐리어 서비스 웹훅 모듈"""
from .app import create_app

__all__ = ["create_app"]
