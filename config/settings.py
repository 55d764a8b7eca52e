"""
settings.py - 프로젝트 설정 파일 (v1.0)

환경변수 기반 설정 관리 (.env 지원)
"""

import os
from pathlib import Path
from dataclasses import dataclass
from typing import List

from dotenv import load_dotenv

load_dotenv()

# 프로젝트 루트 디렉토리
ROOT_DIR = Path(__file__).parent.parent
DATA_DIR = ROOT_DIR / "data"
LOGS_DIR = ROOT_DIR / "logs"


def _env_bool(key: str, default: str = "false") -> bool:
    return os.getenv(key, default).strip().lower() in ("1", "true", "yes")


@dataclass
class AppSettings:
    """애플리케이션 설정"""

    # --- Supabase (변경 요청/로그/오버레이 저장소) ---
    supabase_url: str = ""
    supabase_key: str = ""

    # --- Shopify Admin API ---
    shopify_store: str = ""                     # xxx.myshopify.com
    shopify_token: str = ""
    shopify_api_version: str = "2024-07"

    # --- 요금 작업 ---
    request_timeout: float = 30.0               # 외부 호출 타임아웃 (초)
    data_dir: str = str(DATA_DIR)               # 로컬 저장소 경로
    use_mock: bool = False                      # Shopify/Supabase 대신 Mock 사용

    # --- 캐리어 웹훅 서버 ---
    webhook_host: str = "0.0.0.0"
    webhook_port: int = 8000

    # --- 기타 ---
    debug_mode: bool = False
    log_level: str = "INFO"
    log_to_file: bool = False                   # logs/ 디렉토리에 회전 로그 파일
    log_json: bool = False                      # JSON 로그 포맷

    @classmethod
    def from_env(cls) -> "AppSettings":
        """환경변수에서 설정 로드"""
        return cls(
            supabase_url=os.getenv("SUPABASE_URL", ""),
            supabase_key=os.getenv("SUPABASE_KEY", ""),
            shopify_store=os.getenv("SHOPIFY_STORE", ""),
            shopify_token=os.getenv("SHOPIFY_TOKEN", ""),
            shopify_api_version=os.getenv("SHOPIFY_API_VERSION", "2024-07"),
            request_timeout=float(os.getenv("FREIGHT_REQUEST_TIMEOUT", "30")),
            data_dir=os.getenv("FREIGHT_DATA_DIR", str(DATA_DIR)),
            use_mock=_env_bool("FREIGHT_USE_MOCK"),
            webhook_host=os.getenv("WEBHOOK_HOST", "0.0.0.0"),
            webhook_port=int(os.getenv("WEBHOOK_PORT", "8000")),
            debug_mode=_env_bool("DEBUG"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_to_file=_env_bool("LOG_TO_FILE"),
            log_json=os.getenv("LOG_FORMAT", "").lower() == "json",
        )

    @property
    def has_supabase(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

    def validate(self) -> List[str]:
        """설정 유효성 검사"""
        errors = []

        if not self.use_mock:
            if not self.shopify_store:
                errors.append("SHOPIFY_STORE가 설정되지 않았습니다.")
            if not self.shopify_token:
                errors.append("SHOPIFY_TOKEN이 설정되지 않았습니다.")

        if self.request_timeout <= 0:
            errors.append("FREIGHT_REQUEST_TIMEOUT은 0보다 커야 합니다.")

        if not (0 < self.webhook_port < 65536):
            errors.append("WEBHOOK_PORT가 올바르지 않습니다.")

        return errors


# 전역 설정 인스턴스
settings = AppSettings.from_env()


def get_settings() -> AppSettings:
    """설정 인스턴스 반환"""
    return settings


def reload_settings() -> AppSettings:
    """설정 다시 로드"""
    global settings
    settings = AppSettings.from_env()
    return settings
