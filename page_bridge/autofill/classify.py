"""Classification of a raw text value into a semantic field kind.

Predicates run in a fixed order and the first match wins, so a value that
looks like several kinds gets the earliest one (``'北京市'`` is three CJK
characters, hence a name, not an address). The order is not configurable.
"""

from __future__ import annotations

__all__ = [
    'FieldKind',
    'FIELD_KEYWORDS',
    'classify',
    'keywords_for',
]

import enum
import re
from collections.abc import Callable, Sequence


class FieldKind(enum.StrEnum):
    NAME = 'name'
    PHONE = 'phone'
    EMAIL = 'email'
    NATIONAL_ID = 'national_id'
    DATE = 'date'
    ADDRESS = 'address'
    UNCLASSIFIED = 'unclassified'


_CJK_NAME = re.compile(r'[一-龥]{2,4}')
_LATIN_NAME = re.compile(r'[a-zA-Z\s]{2,20}')
_MOBILE = re.compile(r'1[3-9]\d{9}', re.ASCII)
_ELEVEN_DIGITS = re.compile(r'\d{11}', re.ASCII)
_EMAIL = re.compile(r'[^\s@]+@[^\s@]+\.[^\s@]+')
_NATIONAL_ID = re.compile(r'\d{17}[\dXx]', re.ASCII)
_NUMERIC_DATE = re.compile(r'\d{4}[-/]\d{1,2}[-/]\d{1,2}', re.ASCII)
_CJK_DATE = re.compile(r'\d{4}年\d{1,2}月\d{1,2}日', re.ASCII)
_ADDRESS_UNITS = ('市', '省', '区', '县')
_ADDRESS_MIN_LENGTH = 5


def _is_name(text: str) -> bool:
    return bool(_CJK_NAME.fullmatch(text) or _LATIN_NAME.fullmatch(text))


def _is_phone(text: str) -> bool:
    return bool(_MOBILE.fullmatch(text) or _ELEVEN_DIGITS.fullmatch(text))


def _is_email(text: str) -> bool:
    return bool(_EMAIL.fullmatch(text))


def _is_national_id(text: str) -> bool:
    return bool(_NATIONAL_ID.fullmatch(text))


def _is_date(text: str) -> bool:
    return bool(_NUMERIC_DATE.fullmatch(text) or _CJK_DATE.fullmatch(text))


def _is_address(text: str) -> bool:
    return len(text) > _ADDRESS_MIN_LENGTH and any(unit in text for unit in _ADDRESS_UNITS)


_PREDICATES: Sequence[tuple[FieldKind, Callable[[str], bool]]] = (
    (FieldKind.NAME, _is_name),
    (FieldKind.PHONE, _is_phone),
    (FieldKind.EMAIL, _is_email),
    (FieldKind.NATIONAL_ID, _is_national_id),
    (FieldKind.DATE, _is_date),
    (FieldKind.ADDRESS, _is_address),
)

FIELD_KEYWORDS: dict[FieldKind, tuple[str, ...]] = {
    FieldKind.NAME: ('name', '姓名', '名字'),
    FieldKind.PHONE: ('phone', 'tel', '电话', '手机'),
    FieldKind.EMAIL: ('email', '邮箱', '邮件'),
    FieldKind.NATIONAL_ID: ('id', '身份证', '证件'),
    FieldKind.DATE: ('date', 'birth', '日期', '出生'),
    FieldKind.ADDRESS: ('address', 'city', '地址', '城市'),
    FieldKind.UNCLASSIFIED: (),
}


def classify(text: str) -> FieldKind:
    """Classify ``text``; a pure function of its input."""
    for kind, predicate in _PREDICATES:
        if predicate(text):
            return kind
    return FieldKind.UNCLASSIFIED


def keywords_for(kind: FieldKind) -> tuple[str, ...]:
    """Fingerprint keywords that make a field eligible for ``kind``."""
    return FIELD_KEYWORDS[kind]
