"""공용 테스트 픽스처"""

import shutil
import sys
import tempfile
from pathlib import Path

import pytest

# 경로 설정
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.api.shopify_client import MockShopifyClient
from src.notifications.events import EventEmitter
from src.services.catalog import RateCatalog
from src.storage.repository import LocalRepository


@pytest.fixture
def temp_data_dir():
    """임시 데이터 디렉토리"""
    temp_dir = tempfile.mkdtemp()
    yield temp_dir
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def repository(temp_data_dir):
    """테스트용 로컬 저장소"""
    return LocalRepository(data_dir=temp_data_dir)


@pytest.fixture
def shopify():
    """샘플 존이 들어 있는 Mock Shopify"""
    return MockShopifyClient.with_sample_data()


@pytest.fixture
def events():
    """테스트마다 새 이벤트 이미터"""
    return EventEmitter()


@pytest.fixture
def catalog(shopify, repository, events):
    """Mock Shopify + 로컬 저장소 카탈로그"""
    return RateCatalog(shopify, repository, events=events)
