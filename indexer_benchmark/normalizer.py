"""
Field Normalizer

Maps platform-native records onto the common record shapes in records.py.

Which source field feeds which common field is enumerated once per
platform and data type in FIELD_ALIASES. Conversions applied on the way:
- raw bytes (Postgres bytea) become lowercase 0x-prefixed hex
- hex and scientific-notation numbers become plain decimal strings
- integer columns accept ints, numeric strings, hex, datetimes and ISO dates
- Sentio's `__genBlockChain__` ("<chain>:<block>") yields the block number
- swap paths given as lists become comma-joined strings with a length

Hash and address case is left untouched; comparison normalizes it later.
"""

import logging
from collections import Counter
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, localcontext
from typing import Any, Callable, Dict, List, Optional, Tuple

from .records import BOOLEAN, INT32, INT64, RecordSchema, get_schema
from .values import strip_trailing_zeros

logger = logging.getLogger(__name__)

Aliases = Dict[str, Tuple[str, ...]]


# Default source names per common field; platforms override below.
_BASE_ALIASES: Dict[str, Aliases] = {
    'transfers': {
        'id': ('id',),
        'blockNumber': ('blockNumber', 'block_number'),
        'transactionHash': ('transactionHash', 'transaction_hash'),
        'from': ('from',),
        'to': ('to',),
        'value': ('value',),
    },
    'accounts': {
        'id': ('id',),
        'balance': ('balance',),
        'point': ('point',),
        'timestamp': ('timestamp',),
    },
    'blocks': {
        'number': ('number',),
        'hash': ('hash',),
        'parentHash': ('parentHash', 'parent_hash'),
        'timestamp': ('timestamp',),
    },
    'gas': {
        'id': ('id',),
        'blockNumber': ('blockNumber', 'block_number'),
        'transactionHash': ('transactionHash', 'transaction_hash', 'hash'),
        'sender': ('sender', 'from'),
        'recipient': ('recipient', 'to'),
        'gasValue': ('gasValue', 'gas_value'),
        'gasUsed': ('gasUsed', 'gas_used'),
        'gasPrice': ('gasPrice', 'gas_price'),
        'effectiveGasPrice': ('effectiveGasPrice', 'effective_gas_price'),
    },
    'swaps': {
        'id': ('id',),
        'blockNumber': ('blockNumber', 'block_number'),
        'transactionHash': ('transactionHash', 'transaction_hash', 'txHash'),
        'from': ('from',),
        'to': ('to',),
        'amountIn': ('amountIn', 'amount_in'),
        'amountOutMin': ('amountOutMin', 'amount_out_min'),
        'deadline': ('deadline',),
        'path': ('path',),
        'pathLength': ('pathLength', 'path_length'),
    },
}

_PLATFORM_OVERRIDES: Dict[Tuple[str, str], Aliases] = {
    ('sentio', 'transfers'): {
        'blockNumber': ('blockNumber', '__genBlockChain__'),
        'from': ('from__', 'from'),
        'to': ('to__', 'to'),
    },
    ('sentio', 'gas'): {
        'sender': ('sender', 'from__', 'from'),
        'recipient': ('recipient', 'to__', 'to'),
    },
    ('sentio', 'swaps'): {
        'from': ('from__', 'from'),
        'to': ('to__', 'to'),
    },
    ('envio', 'accounts'): {
        'id': ('account.id', 'accountId', 'id'),
        'timestamp': ('timestampMilli', 'lastSnapshotTimestamp', 'timestamp'),
    },
    ('envio', 'gas'): {
        'id': ('id', 'hash'),
    },
    ('subgraph', 'accounts'): {
        'id': ('account.id', 'id'),
        'timestamp': ('timestampMilli', 'timestamp'),
    },
    ('subsquid', 'swaps'): {
        'from': ('sender', 'from'),
        'amountOutMin': ('amountOutMin', 'amountOut'),
    },
}

FIELD_ALIASES: Dict[Tuple[str, str], Aliases] = {}
for _platform in ('sentio', 'envio', 'ponder', 'subsquid', 'subgraph'):
    for _data_type, _aliases in _BASE_ALIASES.items():
        FIELD_ALIASES[(_platform, _data_type)] = dict(
            _aliases, **_PLATFORM_OVERRIDES.get((_platform, _data_type), {})
        )


class NormalizationError(ValueError):
    """A present field value could not be converted to its column type."""


def lookup(raw: Dict[str, Any], path: str) -> Any:
    """Resolve a dotted path such as 'account.id' inside a record."""
    value: Any = raw
    for part in path.split('.'):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def bytes_to_hex(value: Any) -> Any:
    """Convert raw bytes to lowercase 0x-prefixed hex, leave anything else."""
    if isinstance(value, memoryview):
        value = value.tobytes()
    if isinstance(value, (bytes, bytearray)):
        return '0x' + bytes(value).hex()
    return value


def to_decimal_string(value: Any) -> str:
    """
    Render a numeric value as a plain decimal string without precision loss.

    Accepts ints, Decimals, floats, decimal strings, scientific notation and
    0x-prefixed hex. Integral values come back without a fractional part.

    Raises:
        NormalizationError: If the value is not numeric
    """
    if isinstance(value, bool):
        raise NormalizationError(f"Boolean is not a numeric value: {value}")
    if isinstance(value, int):
        return str(value)

    text = str(value).strip()
    if text.lower().startswith('0x'):
        try:
            return str(int(text, 16))
        except ValueError:
            raise NormalizationError(f"Invalid hex number: {text}") from None

    try:
        number = Decimal(text)
    except InvalidOperation:
        raise NormalizationError(f"Not a number: {text!r}") from None
    if not number.is_finite():
        raise NormalizationError(f"Not a finite number: {text!r}")

    if number == number.to_integral_value():
        return str(int(number))
    return format(strip_trailing_zeros(number), 'f')


def to_int(value: Any) -> int:
    """
    Coerce a value to an integer column.

    Raises:
        NormalizationError: If the value cannot be read as an integer
    """
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp())

    text = str(value).strip()
    if ':' in text and text.split(':', 1)[0].isdigit() and text.split(':', 1)[1].isdigit():
        # "<chain>:<block>" as found in __genBlockChain__
        text = text.rsplit(':', 1)[1]

    try:
        return int(to_decimal_string(text).split('.')[0])
    except NormalizationError:
        pass

    try:
        parsed = datetime.fromisoformat(text.replace('Z', '+00:00'))
    except ValueError:
        raise NormalizationError(f"Not an integer: {text!r}") from None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp())


def multiply_exact(left: Any, right: Any) -> str:
    """
    Exact product of two numeric values as a plain decimal string.

    Raises:
        NormalizationError: If either value is not numeric
    """
    a = Decimal(to_decimal_string(left))
    b = Decimal(to_decimal_string(right))
    with localcontext() as ctx:
        # enough digits that the product is never rounded
        ctx.prec = len(a.as_tuple().digits) + len(b.as_tuple().digits) + 1
        return to_decimal_string(a * b)


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == '')


def _derive_transfer(record: Dict[str, Any], raw: Dict[str, Any]):
    # Sentio ids look like "<txHash>-<logIndex>"
    if _is_missing(record.get('transactionHash')) and record.get('id'):
        record['transactionHash'] = str(record['id']).split('-')[0]


def _derive_gas(record: Dict[str, Any], raw: Dict[str, Any]):
    if _is_missing(record.get('effectiveGasPrice')) and not _is_missing(record.get('gasPrice')):
        record['effectiveGasPrice'] = record['gasPrice']
    if _is_missing(record.get('gasValue')):
        gas_used = record.get('gasUsed')
        price = record.get('effectiveGasPrice')
        if not _is_missing(gas_used) and not _is_missing(price):
            record['gasValue'] = multiply_exact(gas_used, price)
    if _is_missing(record.get('id')):
        record['id'] = record.get('transactionHash')


def _derive_swap(record: Dict[str, Any], raw: Dict[str, Any]):
    path = record.get('path')
    if _is_missing(path) and not _is_missing(raw.get('tokenIn')):
        path = [raw.get('tokenIn'), raw.get('tokenOut')]

    if isinstance(path, (list, tuple)):
        hops = [str(bytes_to_hex(hop)) for hop in path if not _is_missing(hop)]
        record['path'] = ','.join(hops)
        if _is_missing(record.get('pathLength')):
            record['pathLength'] = len(hops)
    elif isinstance(path, str) and path and _is_missing(record.get('pathLength')):
        record['pathLength'] = path.count(',') + 1

    if _is_missing(record.get('id')) and record.get('transactionHash'):
        trace_address = raw.get('traceAddress', raw.get('trace_address'))
        if isinstance(trace_address, (list, tuple)):
            trace_address = '-'.join(str(part) for part in trace_address)
        suffix = trace_address if not _is_missing(trace_address) else '0'
        record['id'] = f"{record['transactionHash']}-{suffix}"


_DERIVATIONS: Dict[str, Callable[[Dict[str, Any], Dict[str, Any]], None]] = {
    'transfers': _derive_transfer,
    'gas': _derive_gas,
    'swaps': _derive_swap,
}


class RecordNormalizer:
    """
    Normalizer for one platform and data type.

    Keeps running counts of skipped records and of fields that had to be
    defaulted because the platform did not report them or reported a value
    that is not a number.
    """

    def __init__(self, platform: str, data_type: str):
        key = (platform, data_type)
        if key not in FIELD_ALIASES:
            raise ValueError(f"No field mapping for platform '{platform}' and data type '{data_type}'")
        self.platform = platform
        self.data_type = data_type
        self.schema: RecordSchema = get_schema(data_type)
        self.aliases = FIELD_ALIASES[key]
        self.records_skipped = 0
        self.defaulted_fields: Counter = Counter()

    def _pick(self, raw: Dict[str, Any], column: str) -> Any:
        for path in self.aliases.get(column, (column,)):
            value = lookup(raw, path)
            if not _is_missing(value):
                return bytes_to_hex(value)
        return None

    def _default(self, column: str, column_type: str) -> Any:
        self.defaulted_fields[column] += 1
        if column_type in (INT64, INT32):
            return 0
        if column_type == BOOLEAN:
            return False
        if column in self.schema.decimal_fields:
            return '0'
        return ''

    def normalize(self, raw: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Convert one native record.

        Returns:
            The normalized record, or None when it must be skipped
        """
        if not isinstance(raw, dict):
            self._skip(f"record is not an object: {raw!r}")
            return None

        picked = {column: self._pick(raw, column) for column in self.schema.field_names}

        derive = _DERIVATIONS.get(self.data_type)
        try:
            if derive:
                derive(picked, raw)
        except NormalizationError as e:
            self._skip(f"cannot derive fields: {e}")
            return None

        missing = [column for column in self.schema.required if _is_missing(picked.get(column))]
        if missing:
            self._skip(f"missing required fields {missing}: {raw}")
            return None

        record: Dict[str, Any] = {}
        for column, column_type in self.schema.columns:
            value = picked.get(column)
            if _is_missing(value):
                record[column] = self._default(column, column_type)
                continue
            try:
                if column_type in (INT64, INT32):
                    record[column] = to_int(value)
                elif column_type == BOOLEAN:
                    record[column] = bool(value)
                elif column in self.schema.decimal_fields:
                    record[column] = to_decimal_string(value)
                else:
                    record[column] = str(value)
            except NormalizationError as e:
                logger.warning(f"[{self.platform}/{self.data_type}] Field '{column}': {e}, using default")
                record[column] = self._default(column, column_type)

        return record

    def _skip(self, reason: str):
        self.records_skipped += 1
        logger.warning(f"[{self.platform}/{self.data_type}] Skipping record, {reason}")


def normalize_record(platform: str, data_type: str, raw: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Normalize a single record without keeping counters."""
    return RecordNormalizer(platform, data_type).normalize(raw)


def normalize_records(
    platform: str,
    data_type: str,
    raws: List[Dict[str, Any]]
) -> List[Dict[str, Any]]:
    normalizer = RecordNormalizer(platform, data_type)
    return [record for record in (normalizer.normalize(raw) for raw in raws) if record is not None]
