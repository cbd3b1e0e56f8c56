"""
자산 데이터 모델
================

거래소 전체 자산 정보(AssetInfo)와 사용자 계정 자산(AccountAsset)을 정의하고,
커밋먼트 계산 전에 필요한 검증과 고정 길이 패딩을 수행한다.

커밋먼트 함수는 순서와 완전성에 민감하다. 희소한 자산 목록은 인덱스를 키로
명시적으로 초기화한 고정 길이 벡터로 만든 뒤 커밋한다.
"""

import logging
from dataclasses import dataclass, replace

from zkpor.solvency.errors import AssetInvariantError, DecodeError, InvalidAssetIndexError

logger = logging.getLogger(__name__)

MAX_ASSET_INDEX = 1 << 16
MAX_BALANCE = 1 << 128
MAX_PRICE = 1 << 64

# 배치 회로가 사용하는 사용자 자산 벡터 길이
DEFAULT_ASSET_COUNT = 350


@dataclass(frozen=True)
class AssetInfo:
    """거래소 단위 자산 정보 (신뢰할 수 있는 외부 가격/잔고 데이터)."""

    index: int
    symbol: str
    total_equity: int
    total_debt: int
    base_price: int = 0


@dataclass(frozen=True)
class AccountAsset:
    """사용자 계정의 자산 하나."""

    index: int
    equity: int = 0
    debt: int = 0


def _check_uint(value, bound, field):
    if isinstance(value, bool) or not isinstance(value, int):
        raise DecodeError(f"{field}: expected an integer, got {value!r}")
    if value < 0 or value >= bound:
        raise DecodeError(f"{field}: {value} out of range [0, {bound})")
    return value


def asset_info_from_dict(data):
    """설정 파일의 CexAssetsInfo 항목을 AssetInfo로 변환한다.

    설정 파일의 키(Index, Symbol, TotalEquity, TotalDebt, BasePrice)와
    snake_case 키를 모두 받는다.
    """
    try:
        index = data["Index"] if "Index" in data else data["index"]
        symbol = data.get("Symbol", data.get("symbol", ""))
        equity = data["TotalEquity"] if "TotalEquity" in data else data["total_equity"]
        debt = data["TotalDebt"] if "TotalDebt" in data else data["total_debt"]
        price = data.get("BasePrice", data.get("base_price", 0))
    except (KeyError, AttributeError, TypeError) as e:
        raise DecodeError(f"invalid asset info entry {data!r}: missing {e}") from e
    return AssetInfo(
        index=_check_uint(index, MAX_ASSET_INDEX, "asset index"),
        symbol=str(symbol),
        total_equity=_check_uint(equity, MAX_BALANCE, f"{symbol} total equity"),
        total_debt=_check_uint(debt, MAX_BALANCE, f"{symbol} total debt"),
        base_price=_check_uint(price, MAX_PRICE, f"{symbol} base price"),
    )


def account_asset_from_dict(data):
    try:
        index = data["Index"] if "Index" in data else data["index"]
        equity = data.get("Equity", data.get("equity", 0))
        debt = data.get("Debt", data.get("debt", 0))
    except (KeyError, AttributeError, TypeError) as e:
        raise DecodeError(f"invalid account asset entry {data!r}: missing {e}") from e
    return AccountAsset(
        index=_check_uint(index, MAX_ASSET_INDEX, "asset index"),
        equity=_check_uint(equity, MAX_BALANCE, "asset equity"),
        debt=_check_uint(debt, MAX_BALANCE, "asset debt"),
    )


def validate_asset_infos(asset_infos):
    """거래소 자산 정보의 불변식을 확인한다.

    - 모든 자산에 대해 total_equity >= total_debt
    - 인덱스는 0..n-1을 중복 없이 모두 채워야 한다

    체인 검증을 시작하기 전에 호출해야 한다. 위반은 증명 실패가 아니라
    설정 오류이다.

    Raises:
        AssetInvariantError
    """
    seen = set()
    for info in asset_infos:
        if info.total_equity < info.total_debt:
            logger.warning(
                "%s asset equity %d less then debt %d",
                info.symbol, info.total_equity, info.total_debt,
            )
            raise AssetInvariantError(
                f"invalid cex asset info: {info.symbol} asset equity "
                f"{info.total_equity} less than debt {info.total_debt}"
            )
        if info.index in seen:
            raise AssetInvariantError(f"duplicate cex asset index {info.index}")
        seen.add(info.index)
    expected = set(range(len(asset_infos)))
    if seen != expected:
        missing = sorted(expected - seen)
        raise AssetInvariantError(
            f"cex asset indices must cover 0..{len(asset_infos) - 1}, missing {missing}"
        )


def order_asset_infos(asset_infos):
    return sorted(asset_infos, key=lambda info: info.index)


def empty_asset_infos(asset_infos):
    """잔고를 0으로 만든 자산 목록 (빈 원장 커밋먼트 계산용).

    인덱스, 심볼, 가격은 그대로 유지한다.
    """
    return [replace(info, total_equity=0, total_debt=0) for info in order_asset_infos(asset_infos)]


def pad_account_assets(assets, asset_count=DEFAULT_ASSET_COUNT):
    """희소한 사용자 자산 목록을 길이 asset_count의 고정 벡터로 만든다.

    모든 위치를 {index: i, equity: 0, debt: 0}으로 초기화한 뒤,
    주어진 자산의 인덱스 위치를 덮어쓴다.

    Args:
        assets: AccountAsset 리스트 (순서 무관)
        asset_count: 벡터 길이

    Returns:
        list[AccountAsset]: 길이 asset_count, i번째 원소의 index == i

    Raises:
        InvalidAssetIndexError: 인덱스가 범위를 벗어나거나 중복될 때

    예시:
        >>> dense = pad_account_assets([AccountAsset(2, 10, 0)], 4)
        >>> [a.equity for a in dense]  # [0, 0, 10, 0]
    """
    dense = [AccountAsset(index=i) for i in range(asset_count)]
    seen = set()
    for asset in assets:
        if asset.index < 0 or asset.index >= asset_count:
            raise InvalidAssetIndexError(
                asset.index, f"asset index {asset.index} out of range [0, {asset_count})"
            )
        if asset.index in seen:
            raise InvalidAssetIndexError(asset.index, f"duplicate asset index {asset.index}")
        seen.add(asset.index)
        dense[asset.index] = asset
    return dense
