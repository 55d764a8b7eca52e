"""
main.py - Freight Rate Desk 진입점 (v1.0)

Shopify 배송 요금 관리 도구
"조합 생성 → 벌크 편집 → 변경 요청 승인 → Shopify 반영" 과정 관리

사용법:
    freight-desk --mock zones
    python -m src.main generate --zone <zone-id> --price ebike=120
"""

import sys

from src.cli.commands import run_cli


def main():
    """메인 함수"""
    sys.exit(run_cli())


if __name__ == "__main__":
    main()
