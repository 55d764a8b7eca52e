"""
CLI 명령어 처리 모듈

배송 요금 관리 CLI:
- 서브커맨드 지원 (zones, generate, bulk-edit, propose, approve ...)
- 벌크 작업은 미리보기 + 확인 후 실행
- 프로그레스 바 지원
- 컬러 출력
"""

import argparse
import sys
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional

from config.logging_config import setup_logging
from config.settings import get_settings

from ..api.shopify_client import get_shopify_client
from ..core.config import DEFAULT_BIKE_TYPES, DEFAULT_CONFIG
from ..core.exceptions import ConfigurationError, FreightDeskError, NotFoundError, ValidationError
from ..domain.combinations import count_combinations
from ..domain.logic import CarrierRateCalculator
from ..domain.models import (
    BikeTypeUnit,
    BulkOperation,
    CarrierBaseRate,
    ChangeStatus,
    OperationType,
    RateDraft,
    RateKey,
    RatePatch,
    RateSelectors,
    format_weight,
    utc_now,
)
from ..domain.pricing import parse_operand
from ..services import (
    BatchRunner,
    BulkRateEditor,
    ChangeApprovalWorkflow,
    CombinationService,
    MultiplierService,
    RateCatalog,
)
from ..storage.supabase_repository import get_repository


@dataclass
class CLIConfig:
    """CLI 설정"""
    verbose: bool = False
    use_mock: bool = False
    no_color: bool = False
    assume_yes: bool = False


class ColorOutput:
    """컬러 출력 유틸리티"""

    COLORS = {
        "reset": "\033[0m",
        "red": "\033[91m",
        "green": "\033[92m",
        "yellow": "\033[93m",
        "cyan": "\033[96m",
        "dim": "\033[2m",
        "bold": "\033[1m",
    }

    def __init__(self, enabled: bool = True):
        self.enabled = enabled and sys.stdout.isatty()

    def colorize(self, text: str, color: str) -> str:
        """텍스트에 색상 적용"""
        if not self.enabled or color not in self.COLORS:
            return text
        return f"{self.COLORS[color]}{text}{self.COLORS['reset']}"

    def success(self, text: str) -> str:
        return self.colorize(text, "green")

    def error(self, text: str) -> str:
        return self.colorize(text, "red")

    def warning(self, text: str) -> str:
        return self.colorize(text, "yellow")

    def info(self, text: str) -> str:
        return self.colorize(text, "cyan")

    def dim(self, text: str) -> str:
        return self.colorize(text, "dim")

    def bold(self, text: str) -> str:
        return self.colorize(text, "bold")


class ProgressBar:
    """배치 진행 표시 (BatchRunner on_progress 콜백으로 사용)"""

    def __init__(self, total: int, width: int = 40, color: ColorOutput = None):
        self.total = total
        self.width = width
        self.current = 0
        self.color = color or ColorOutput()

    def update(self, current: int = None, message: str = ""):
        """프로그레스 업데이트"""
        if current is not None:
            self.current = current
        else:
            self.current += 1

        percent = self.current / self.total if self.total > 0 else 0
        filled = int(self.width * percent)
        bar = "█" * filled + "░" * (self.width - filled)

        line = f"\r  [{bar}] {self.current}/{self.total} {message[:40]:<40}"
        sys.stdout.write(line)
        sys.stdout.flush()

        if self.current >= self.total:
            print()

    def __call__(self, done: int, total: int, label: str):
        self.total = total
        self.update(done, label)


class CLI:
    """Freight Rate Desk CLI"""

    VERSION = "1.0.0"

    def __init__(self, config: CLIConfig = None):
        self.config = config or CLIConfig()
        self.color = ColorOutput(enabled=not self.config.no_color)

    def banner(self):
        """배너 출력"""
        mode = "MOCK" if self.config.use_mock else "LIVE"
        print(self.color.bold(f"Freight Rate Desk v{self.VERSION} [{mode}]"))

    def print_header(self, title: str):
        """섹션 헤더 출력"""
        print(f"\n{self.color.bold('='*60)}")
        print(f"  {self.color.info(title)}")
        print(f"{self.color.bold('='*60)}\n")

    def print_result(self, key: str, value: Any, indent: int = 2):
        """결과 출력"""
        spaces = " " * indent
        print(f"{spaces}{key}: {self.color.bold(str(value))}")

    def print_success(self, message: str):
        print(f"\n✅ {self.color.success(message)}")

    def print_error(self, message: str):
        print(f"\n❌ {self.color.error(message)}", file=sys.stderr)

    def print_warning(self, message: str):
        print(f"\n⚠️ {self.color.warning(message)}")

    def confirm(self, message: str, default: bool = False) -> bool:
        """확인 프롬프트 (--yes면 항상 True)"""
        if self.config.assume_yes:
            return True
        suffix = "[Y/n]" if default else "[y/N]"
        try:
            response = input(f"{message} {suffix}: ").strip().lower()
            if not response:
                return default
            return response in ("y", "yes", "예")
        except (EOFError, KeyboardInterrupt):
            return False

    def progress(self, total: int) -> ProgressBar:
        return ProgressBar(total, color=self.color)

    def print_batch_result(self, result):
        """배치 결과 출력 ("N of M succeeded" + 실패 내역)"""
        for failure in result.failures:
            print(f"    {self.color.error('✗')} {failure.label}: {failure.message}")
        if result.all_succeeded and not result.cancelled:
            self.print_success(result.summary())
        else:
            self.print_warning(result.summary())


# ========== 서비스 구성 ==========

@dataclass
class DeskServices:
    """CLI 명령이 사용하는 서비스 묶음"""
    repository: Any
    catalog: RateCatalog
    multipliers: MultiplierService
    bulk_editor: BulkRateEditor
    combinations: CombinationService
    approval: ChangeApprovalWorkflow
    calculator: CarrierRateCalculator


def build_services(config: CLIConfig, settings=None) -> DeskServices:
    """설정에 따라 저장소/Shopify 클라이언트를 고르고 서비스 조립"""
    settings = settings or get_settings()
    use_mock = config.use_mock or settings.use_mock

    if not use_mock:
        errors = settings.validate()
        if errors:
            raise ConfigurationError(" / ".join(errors))

    repository = get_repository(settings, use_mock=use_mock)
    shopify = get_shopify_client(settings, use_mock=use_mock)

    runner = BatchRunner(timeout=settings.request_timeout)
    catalog = RateCatalog(shopify, repository)
    multipliers = MultiplierService(repository)

    return DeskServices(
        repository=repository,
        catalog=catalog,
        multipliers=multipliers,
        bulk_editor=BulkRateEditor(catalog, multipliers, runner=runner),
        combinations=CombinationService(catalog, runner=runner),
        approval=ChangeApprovalWorkflow(repository, catalog),
        calculator=CarrierRateCalculator(),
    )


# ========== 인자 파싱 ==========

def decimal_arg(text: str) -> Decimal:
    """argparse용 Decimal 변환"""
    try:
        value = Decimal(text)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"숫자가 아닙니다: {text!r}")
    if not value.is_finite():
        raise argparse.ArgumentTypeError(f"유한한 숫자가 아닙니다: {text!r}")
    return value


def parse_unit_prices(pairs: Optional[List[str]]) -> List[BikeTypeUnit]:
    """'ebike=120' 형식의 가격 목록을 자전거 타입 단위로 변환

    가격이 지정되지 않은 기본 타입은 비활성으로 남는다.
    """
    prices = {}
    for pair in pairs or []:
        type_id, sep, raw = pair.partition("=")
        if not sep:
            raise ValidationError(f"Expected TYPE=PRICE, got {pair!r}", field="price", value=pair)
        price = parse_operand(raw, field="price")
        if price is None or price < 0:
            raise ValidationError(f"Invalid price for {type_id}: {raw!r}", field="price", value=raw)
        prices[type_id.strip()] = price

    known = {bike.id for bike in DEFAULT_BIKE_TYPES}
    unknown = set(prices) - known
    if unknown:
        raise ValidationError(f"Unknown bike types: {sorted(unknown)}", field="price", value=sorted(unknown))

    return [
        BikeTypeUnit(
            id=bike.id,
            name=bike.name,
            weight=bike.weight,
            price=prices.get(bike.id, Decimal("0")),
            enabled=bike.id in prices,
        )
        for bike in DEFAULT_BIKE_TYPES
    ]


def create_parser() -> argparse.ArgumentParser:
    """CLI 파서 생성"""
    parser = argparse.ArgumentParser(
        prog="freight-desk",
        description="자전거 배송 요금 관리 도구 (Shopify 배송 존/요금)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
예시:
  # 존/요금 조회 (샘플 데이터)
  %(prog)s --mock zones

  # 조합 요금 미리보기 후 생성
  %(prog)s generate --zone gid://shopify/DeliveryZone/1 --price ebike=120 --price road=80 --create

  # Road Bike 요금 10%% 인상
  %(prog)s bulk-edit --category "Road Bike" --op percentage --value 10

  # 가격 변경 요청 -> 승인
  %(prog)s propose --zone gid://shopify/DeliveryZone/1 --rate gid://shopify/DeliveryMethodDefinition/101 --price 95
  %(prog)s approve <change-id>

  # 캐리어 서비스 웹훅 실행
  %(prog)s serve-webhook --port 8000
"""
    )

    parser.add_argument("-v", "--verbose", action="store_true", help="상세 출력 모드")
    parser.add_argument("--no-color", action="store_true", help="컬러 출력 비활성화")
    parser.add_argument("--mock", action="store_true", help="Mock Shopify + 로컬 JSON 저장소 사용")
    parser.add_argument("-y", "--yes", action="store_true", help="확인 프롬프트 생략")
    parser.add_argument("--version", action="version", version=f"%(prog)s {CLI.VERSION}")

    subparsers = parser.add_subparsers(dest="command", help="사용 가능한 명령어")

    # zones
    zones_parser = subparsers.add_parser("zones", help="배송 존/요금 조회")
    zones_parser.add_argument("--zone", help="특정 존 ID만 출력")

    # generate
    gen_parser = subparsers.add_parser("generate", help="자전거 조합 요금 생성")
    gen_parser.add_argument("--zone", required=True, help="대상 존 ID")
    gen_parser.add_argument("--price", action="append", metavar="TYPE=PRICE",
                            help="타입별 단가 (ebike, road, mountain). 반복 지정")
    gen_parser.add_argument("--max-bikes", type=int, default=DEFAULT_CONFIG.default_max_bikes,
                            help=f"최대 자전거 수 (기본: {DEFAULT_CONFIG.default_max_bikes})")
    gen_parser.add_argument("--label", help="요금 이름 앞에 붙일 라벨")
    gen_parser.add_argument("--currency", help="통화 (기본: 존의 기존 통화)")
    gen_parser.add_argument("--create", action="store_true", help="미리보기 후 요금 생성")

    # bulk-edit
    bulk_parser = subparsers.add_parser("bulk-edit", help="요금 가격 일괄 변경")
    bulk_parser.add_argument("--category", action="append", default=[], help="카테고리 필터 (반복 가능)")
    bulk_parser.add_argument("--country", action="append", default=[], help="국가 코드 필터 (반복 가능)")
    bulk_parser.add_argument("--zone", action="append", default=[], help="존 ID 필터 (반복 가능)")
    bulk_parser.add_argument("--op", required=True, choices=[t.value for t in OperationType], help="연산 종류")
    bulk_parser.add_argument("--value", help="피연산자")
    bulk_parser.add_argument("--multiplier", help="배수 ID")

    # bulk-delete
    bdel_parser = subparsers.add_parser("bulk-delete", help="요금 일괄 삭제")
    bdel_parser.add_argument("--zone", required=True, help="대상 존 ID")
    bdel_parser.add_argument("--rate", action="append", required=True, help="삭제할 요금 ID (반복 가능)")

    # create-rate / edit-rate
    rate_create_parser = subparsers.add_parser("create-rate", help="단일 요금 생성")
    rate_create_parser.add_argument("--zone", required=True, help="대상 존 ID")
    edit_parser = subparsers.add_parser("edit-rate", help="단일 요금 수정 (지정한 필드만)")
    edit_parser.add_argument("--zone", required=True, help="존 ID")
    edit_parser.add_argument("--rate", required=True, help="요금 ID")
    for sub, required in ((rate_create_parser, True), (edit_parser, False)):
        sub.add_argument("--name", required=required, help="요금 이름")
        sub.add_argument("--price", type=decimal_arg, required=required, help="가격")
        sub.add_argument("--currency", help="통화 (기본: 존의 기존 통화)")
        sub.add_argument("--min-weight", type=float, help="최소 무게 (kg)")
        sub.add_argument("--max-weight", type=float, help="최대 무게 (kg)")
        sub.add_argument("--category", help="카테고리 (예: Road Bike)")
        sub.add_argument("--days", help="예상 배송일 (예: 10-14)")
        sub.add_argument("--description", help="설명")

    # propose
    propose_parser = subparsers.add_parser("propose", help="가격 변경 요청 생성")
    propose_parser.add_argument("--zone", required=True, help="존 ID")
    propose_parser.add_argument("--rate", required=True, help="요금 ID")
    propose_parser.add_argument("--price", type=decimal_arg, required=True, help="제안 가격")
    propose_parser.add_argument("--name", help="제안 요금 이름")
    propose_parser.add_argument("--notes", help="메모")
    propose_parser.add_argument("--by", help="요청자")

    # pending
    pending_parser = subparsers.add_parser("pending", help="변경 요청 목록")
    pending_parser.add_argument("--status", choices=["pending", "approved", "rejected", "all"],
                                default="pending", help="상태 필터 (기본: pending)")

    # approve / reject / amend
    approve_parser = subparsers.add_parser("approve", help="변경 요청 승인 + 반영")
    approve_parser.add_argument("change_id", help="변경 요청 ID")
    approve_parser.add_argument("--by", help="검토자")

    reject_parser = subparsers.add_parser("reject", help="변경 요청 반려")
    reject_parser.add_argument("change_id", help="변경 요청 ID")
    reject_parser.add_argument("--by", help="검토자")
    reject_parser.add_argument("--notes", help="반려 사유")

    amend_parser = subparsers.add_parser("amend", help="검토 전 제안 가격/이름 수정")
    amend_parser.add_argument("change_id", help="변경 요청 ID")
    amend_parser.add_argument("--price", type=decimal_arg, required=True, help="새 제안 가격")
    amend_parser.add_argument("--name", help="새 제안 이름")

    # logs
    logs_parser = subparsers.add_parser("logs", help="감사 로그 조회")
    logs_parser.add_argument("--limit", type=int, default=DEFAULT_CONFIG.log_limit, help="최대 건수")
    logs_parser.add_argument("--zone", help="존 ID (--rate와 함께)")
    logs_parser.add_argument("--rate", help="요금 ID (--zone과 함께)")

    # multipliers
    mult_parser = subparsers.add_parser("multipliers", help="배송 배수 관리")
    mult_sub = mult_parser.add_subparsers(dest="action", required=True)
    mult_sub.add_parser("list", help="배수 목록")
    mult_add = mult_sub.add_parser("add", help="배수 추가")
    mult_add.add_argument("name", help="이름")
    mult_add.add_argument("factor", type=decimal_arg, help="배수 (> 0)")
    mult_add.add_argument("--base-quantity", type=int, default=1, help="기준 수량")
    mult_add.add_argument("--description", help="설명")
    mult_add.add_argument("--inactive", action="store_true", help="비활성 상태로 추가")
    mult_remove = mult_sub.add_parser("remove", help="배수 삭제")
    mult_remove.add_argument("multiplier_id", help="배수 ID")

    # carrier-rates
    carrier_parser = subparsers.add_parser("carrier-rates", help="국가별 캐리어 요금 관리")
    carrier_sub = carrier_parser.add_subparsers(dest="action", required=True)
    carrier_list = carrier_sub.add_parser("list", help="요금 목록")
    carrier_list.add_argument("--country", help="국가 코드 필터")
    carrier_add = carrier_sub.add_parser("add", help="요금 추가")
    carrier_add.add_argument("--country-code", required=True, help="ISO 국가 코드 (예: DE)")
    carrier_add.add_argument("--country-name", required=True, help="국가명")
    carrier_add.add_argument("--price-per-kg", type=decimal_arg, required=True, help="kg당 요금")
    carrier_add.add_argument("--min-price", type=decimal_arg, default=Decimal("0"), help="최소 요금")
    carrier_add.add_argument("--currency", default=DEFAULT_CONFIG.default_currency, help="통화")
    carrier_add.add_argument("--days-min", type=int, default=DEFAULT_CONFIG.default_days_min, help="최소 배송일")
    carrier_add.add_argument("--days-max", type=int, default=DEFAULT_CONFIG.default_days_max, help="최대 배송일")
    carrier_add.add_argument("--service-name", default=DEFAULT_CONFIG.default_service_name, help="서비스명")
    carrier_add.add_argument("--zone", help="연결할 존 ID")
    carrier_toggle = carrier_sub.add_parser("toggle", help="활성/비활성 전환")
    carrier_toggle.add_argument("rate_id", help="요금 ID")
    carrier_remove = carrier_sub.add_parser("remove", help="요금 삭제")
    carrier_remove.add_argument("rate_id", help="요금 ID")

    # quote
    quote_parser = subparsers.add_parser("quote", help="캐리어 서비스 견적 계산")
    quote_parser.add_argument("--country", required=True, help="도착 국가 코드")
    quote_parser.add_argument("--weight", type=decimal_arg, required=True, help="총 무게 (kg)")

    # serve-webhook
    serve_parser = subparsers.add_parser("serve-webhook", help="캐리어 서비스 웹훅 실행")
    serve_parser.add_argument("--host", help="바인드 주소 (기본: WEBHOOK_HOST)")
    serve_parser.add_argument("--port", type=int, help="포트 (기본: WEBHOOK_PORT)")

    return parser


# ========== 명령어 ==========

def cmd_zones(args, cli: CLI, services: DeskServices):
    """존/요금 조회"""
    cli.print_header("🚚 배송 존 / 요금")

    zones = services.catalog.get_zones()
    if args.zone:
        zones = (services.catalog.get_zone(args.zone),)

    for zone in zones:
        countries = ", ".join(zone.countries) or "-"
        print(f"  {cli.color.bold(zone.name)} {cli.color.dim(f'({zone.id}) [{countries}]')}")
        if not zone.rates:
            print(f"    {cli.color.dim('요금 없음')}")
        for rate in zone.rates:
            weights = "-"
            if rate.min_weight is not None or rate.max_weight is not None:
                low = format_weight(rate.min_weight) if rate.min_weight is not None else "0"
                high = format_weight(rate.max_weight) if rate.max_weight is not None else "∞"
                weights = f"{low}-{high}kg"
            category = rate.category or "-"
            print(f"    • {rate.name}: {rate.price} {rate.currency} | {weights} | {category}")
            print(f"      {cli.color.dim(rate.id)}")
        print()

    cli.print_result("존 수", len(zones))
    cli.print_result("요금 수", sum(len(z.rates) for z in zones))


def cmd_generate(args, cli: CLI, services: DeskServices):
    """자전거 조합 요금 생성"""
    cli.print_header("🚲 조합 요금 생성")

    units = parse_unit_prices(args.price)
    qualifying = [u for u in units if u.qualifies]
    if not qualifying:
        raise ValidationError("At least one bike type needs a price > 0 (use --price TYPE=PRICE)",
                              field="price")

    expected = count_combinations(len(qualifying), args.max_bikes)
    if expected > DEFAULT_CONFIG.combination_warning_threshold:
        cli.print_warning(f"조합 {expected}개가 생성됩니다 (타입 {len(qualifying)}종, 최대 {args.max_bikes}대)")
        if not cli.confirm("계속하시겠습니까?"):
            return

    combinations = services.combinations.generate(units, args.max_bikes, args.label)
    for combo in combinations:
        print(f"  • {combo.name}")
        print(f"    {cli.color.dim(combo.description)} -> {combo.total_price}")
    cli.print_result("생성된 조합", len(combinations))

    if not args.create:
        return
    if not cli.confirm(f"{len(combinations)}개 요금을 {args.zone}에 생성하시겠습니까?"):
        cli.print_warning("취소되었습니다")
        return

    result = services.combinations.create_rates(
        args.zone,
        combinations,
        currency=args.currency,
        on_progress=cli.progress(len(combinations)),
    )
    cli.print_batch_result(result)


def cmd_bulk_edit(args, cli: CLI, services: DeskServices):
    """가격 일괄 변경"""
    cli.print_header("💰 벌크 가격 변경")

    operation = BulkOperation(
        type=OperationType(args.op),
        value=parse_operand(args.value),
        multiplier_id=args.multiplier or None,
    )
    selectors = RateSelectors.of(args.category, args.country, args.zone)

    previews = services.bulk_editor.preview(selectors, operation)
    if not previews:
        cli.print_warning("변경할 요금이 없습니다 (필터 또는 연산 값을 확인하세요)")
        return

    for p in previews:
        arrow = cli.color.success("▲") if p.is_increase else cli.color.error("▼")
        print(f"  {p.zone_name} / {p.rate_name}: {p.current_price} -> {p.new_price} {p.currency} "
              f"{arrow} {p.diff:+}")
    cli.print_result("대상 요금", len(previews))

    if not cli.confirm(f"{len(previews)}개 요금에 반영하시겠습니까?"):
        cli.print_warning("취소되었습니다")
        return

    result = services.bulk_editor.apply(previews, on_progress=cli.progress(len(previews)))
    cli.print_batch_result(result)


def cmd_bulk_delete(args, cli: CLI, services: DeskServices):
    """요금 일괄 삭제"""
    cli.print_header("🗑️ 요금 일괄 삭제")

    zone = services.catalog.get_zone(args.zone)
    for rate_id in args.rate:
        rate = zone.find_rate(rate_id)
        print(f"  • {rate.name if rate else cli.color.warning('(알 수 없음)')} {cli.color.dim(rate_id)}")

    if not cli.confirm(f"{zone.name}에서 {len(args.rate)}개 요금을 삭제하시겠습니까?"):
        cli.print_warning("취소되었습니다")
        return

    result = services.combinations.delete_rates(
        args.zone, args.rate, on_progress=cli.progress(len(args.rate))
    )
    cli.print_batch_result(result)


def cmd_create_rate(args, cli: CLI, services: DeskServices):
    """단일 요금 생성"""
    cli.print_header("➕ 요금 생성")

    draft = RateDraft(
        name=args.name.strip(),
        price=args.price,
        currency=args.currency or services.catalog.default_currency(args.zone),
        description=args.description or None,
        min_weight=args.min_weight,
        max_weight=args.max_weight,
    )
    services.catalog.create_rate(args.zone, draft, estimated_days=args.days, category=args.category)
    cli.print_success(f"요금 생성: {draft.name} ({draft.price} {draft.currency})")


_EDIT_FIELDS = {
    "name": "name",
    "price": "price",
    "currency": "currency",
    "min_weight": "min_weight",
    "max_weight": "max_weight",
    "category": "category",
    "days": "estimated_days",
    "description": "description",
}


def cmd_edit_rate(args, cli: CLI, services: DeskServices):
    """단일 요금 수정 (지정한 옵션만 반영)"""
    values = {field: getattr(args, arg) for arg, field in _EDIT_FIELDS.items() if getattr(args, arg) is not None}
    if not values:
        raise ValidationError("Nothing to change (pass at least one field option)", field="rate")

    key = RateKey(args.zone, args.rate)
    updated = services.catalog.update_rate(key, RatePatch.of(**values))
    if "min_weight" in values or "max_weight" in values:
        cli.print_warning("무게 조건을 바꾸면 Shopify가 요금을 새 ID로 다시 만들 수 있습니다")
    cli.print_success(f"요금 수정: {updated.name} ({', '.join(sorted(values))})")


def _print_change(cli: CLI, change):
    status = change.status.value
    colored = {
        ChangeStatus.PENDING: cli.color.warning(status),
        ChangeStatus.APPROVED: cli.color.success(status),
        ChangeStatus.REJECTED: cli.color.error(status),
    }[change.status]
    print(f"  [{colored}] {change.zone_name} / {change.final_rate_name}: "
          f"{change.current_price} -> {change.proposed_price} {change.currency}")
    print(f"    {cli.color.dim(change.id)} by {change.proposed_by}"
          + (f" | {change.notes}" if change.notes else ""))


def cmd_propose(args, cli: CLI, services: DeskServices):
    """가격 변경 요청"""
    change = services.approval.propose_for_rate(
        RateKey(args.zone, args.rate),
        args.price,
        proposed_by=args.by,
        notes=args.notes,
        proposed_rate_name=args.name,
    )
    _print_change(cli, change)
    cli.print_success(f"변경 요청 생성: {change.id}")


def cmd_pending(args, cli: CLI, services: DeskServices):
    """변경 요청 목록"""
    status = None if args.status == "all" else ChangeStatus(args.status)
    changes = services.approval.list_changes(status)

    cli.print_header(f"📋 변경 요청 ({args.status})")
    if not changes:
        print(f"  {cli.color.dim('없음')}")
    for change in changes:
        _print_change(cli, change)
    cli.print_result("합계", len(changes))


def cmd_approve(args, cli: CLI, services: DeskServices):
    """승인 + Shopify 반영"""
    change = services.approval.approve(args.change_id, reviewed_by=args.by)
    _print_change(cli, change)
    cli.print_success(f"승인 및 반영 완료: {change.final_rate_name} = {change.proposed_price} {change.currency}")


def cmd_reject(args, cli: CLI, services: DeskServices):
    """반려"""
    change = services.approval.reject(args.change_id, reviewed_by=args.by, notes=args.notes)
    _print_change(cli, change)
    cli.print_success("반려 완료")


def cmd_amend(args, cli: CLI, services: DeskServices):
    """제안 가격/이름 수정"""
    change = services.approval.update_proposed_price(args.change_id, args.price, new_name=args.name)
    _print_change(cli, change)
    cli.print_success("제안 수정 완료")


def cmd_logs(args, cli: CLI, services: DeskServices):
    """감사 로그"""
    if bool(args.zone) != bool(args.rate):
        raise ValidationError("--zone and --rate must be given together", field="rate")
    rate_key = RateKey(args.zone, args.rate) if args.zone else None

    entries = services.approval.list_logs(args.limit, rate_key)
    cli.print_header("📜 변경 로그")
    for entry in entries:
        stamp = entry.created_at.strftime("%Y-%m-%d %H:%M:%S")
        print(f"  {cli.color.dim(stamp)} {entry.action.value:<9} {entry.zone_name} / {entry.rate_name}: "
              f"{entry.old_price} -> {entry.new_price} {entry.currency} ({entry.performed_by})")
    cli.print_result("합계", len(entries))


def cmd_multipliers(args, cli: CLI, services: DeskServices):
    """배수 관리"""
    service = services.multipliers

    if args.action == "list":
        cli.print_header("✖️ 배송 배수")
        for m in service.list():
            state = cli.color.success("active") if m.is_active else cli.color.dim("inactive")
            print(f"  x{m.multiplier} {m.name} (base {m.base_quantity}) [{state}]")
            print(f"    {cli.color.dim(m.id)}" + (f" | {m.description}" if m.description else ""))
    elif args.action == "add":
        m = service.add(args.name, args.factor, args.base_quantity, args.description,
                        is_active=not args.inactive)
        cli.print_success(f"배수 추가: {m.name} x{m.multiplier} ({m.id})")
    elif args.action == "remove":
        service.delete(args.multiplier_id)
        cli.print_success(f"배수 삭제: {args.multiplier_id}")


def _carrier_rate(services: DeskServices, rate_id: str) -> CarrierBaseRate:
    rate = services.repository.get_carrier_rate(rate_id)
    if rate is None:
        raise NotFoundError(f"Carrier rate {rate_id} not found", entity="carrier_rate", entity_id=rate_id)
    return rate


def cmd_carrier_rates(args, cli: CLI, services: DeskServices):
    """국가별 캐리어 요금 관리"""
    repository = services.repository

    if args.action == "list":
        cli.print_header("🌍 캐리어 요금")
        for r in repository.list_carrier_rates(country_code=args.country):
            state = cli.color.success("on") if r.is_active else cli.color.dim("off")
            print(f"  [{state}] {r.country_name} ({r.country_code}): {r.price_per_kg}/kg, "
                  f"min {r.min_price} {r.currency}, {r.estimated_days_min}-{r.estimated_days_max} days")
            print(f"    {cli.color.dim(r.id)}")
    elif args.action == "add":
        if args.price_per_kg < 0 or args.min_price < 0:
            raise ValidationError("Prices must be >= 0", field="price_per_kg")
        rate = repository.add_carrier_rate(CarrierBaseRate(
            country_code=args.country_code.strip().upper(),
            country_name=args.country_name.strip(),
            price_per_kg=args.price_per_kg,
            min_price=args.min_price,
            currency=args.currency,
            estimated_days_min=args.days_min,
            estimated_days_max=args.days_max,
            service_name=args.service_name,
            zone_id=args.zone,
        ))
        cli.print_success(f"캐리어 요금 추가: {rate.country_name} ({rate.id})")
    elif args.action == "toggle":
        rate = _carrier_rate(services, args.rate_id)
        rate.is_active = not rate.is_active
        rate.updated_at = utc_now()
        repository.update_carrier_rate(rate)
        cli.print_success(f"{rate.country_name}: {'활성' if rate.is_active else '비활성'}")
    elif args.action == "remove":
        if not repository.delete_carrier_rate(args.rate_id):
            raise NotFoundError(f"Carrier rate {args.rate_id} not found",
                                entity="carrier_rate", entity_id=args.rate_id)
        cli.print_success(f"캐리어 요금 삭제: {args.rate_id}")


def cmd_quote(args, cli: CLI, services: DeskServices):
    """웹훅과 같은 계산으로 견적 출력"""
    base_rates = services.repository.list_carrier_rates(country_code=args.country.upper(), active_only=True)
    quotes = services.calculator.quote_all(base_rates, args.weight)

    cli.print_header(f"🧾 견적: {args.country.upper()} {args.weight}kg")
    if not quotes:
        cli.print_warning("설정된 캐리어 요금이 없습니다")
        return
    for q in quotes:
        print(f"  {q.service_name}: {Decimal(q.total_price) / 100:.2f} {q.currency} "
              f"({q.description}) {q.min_delivery_date} ~ {q.max_delivery_date}")


def cmd_serve_webhook(args, cli: CLI, services: DeskServices):
    """uvicorn으로 웹훅 실행"""
    import uvicorn
    from ..webhook import create_app

    settings = get_settings()
    host = args.host or settings.webhook_host
    port = args.port or settings.webhook_port

    cli.print_result("웹훅", f"http://{host}:{port}/carrier-service")
    uvicorn.run(create_app(services.repository, services.calculator), host=host, port=port)


COMMANDS = {
    "zones": cmd_zones,
    "generate": cmd_generate,
    "bulk-edit": cmd_bulk_edit,
    "bulk-delete": cmd_bulk_delete,
    "create-rate": cmd_create_rate,
    "edit-rate": cmd_edit_rate,
    "propose": cmd_propose,
    "pending": cmd_pending,
    "approve": cmd_approve,
    "reject": cmd_reject,
    "amend": cmd_amend,
    "logs": cmd_logs,
    "multipliers": cmd_multipliers,
    "carrier-rates": cmd_carrier_rates,
    "quote": cmd_quote,
    "serve-webhook": cmd_serve_webhook,
}


def run_cli(argv: Optional[List[str]] = None, services: Optional[DeskServices] = None) -> int:
    """CLI 실행

    Returns:
        종료 코드 (성공 0, FreightDeskError 1)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    config = CLIConfig(
        verbose=args.verbose,
        use_mock=args.mock,
        no_color=args.no_color,
        assume_yes=args.yes,
    )
    cli = CLI(config)

    settings = get_settings()
    setup_logging(
        name="src",
        level="DEBUG" if config.verbose or settings.debug_mode else settings.log_level,
        log_to_file=settings.log_to_file,
        json_format=settings.log_json,
        color_output=not config.no_color,
    )

    handler = COMMANDS.get(args.command)
    if handler is None:
        cli.banner()
        parser.print_help()
        return 0

    try:
        services = services or build_services(config, settings)
        handler(args, cli, services)
    except FreightDeskError as e:
        cli.print_error(str(e))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(run_cli())
