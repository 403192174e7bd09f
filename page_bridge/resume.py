"""Resume field extraction from plain text.

Works on the text layer of a resume (see ``pdf_text``). Labelled values
(``姓名：张三``) win; otherwise the first value of the right shape is taken.
Birth date and gender fall back to what the national id encodes, and age
falls back to the birth date.
"""

from __future__ import annotations

__all__ = [
    'ResumeInfo',
    'extract_resume_info',
]

import datetime
import logging
import re

from page_bridge.models import WireModel

logger = logging.getLogger(__name__)

_SEP = r'\s*[:：]\s*'

_NAME = re.compile(rf'姓\s*名{_SEP}([一-龥]{{2,4}}|[A-Za-z][A-Za-z ]{{1,19}})')
_BARE_NAME_LINE = re.compile(r'[一-龥]{2,4}')
_AGE = re.compile(rf'年\s*龄{_SEP}([0-9]{{1,3}})|([0-9]{{1,3}})\s*岁')
_NATIONAL_ID = re.compile(r'(?<![0-9])([0-9]{17}[0-9Xx])(?![0-9Xx])')
_BIRTH_DATE = re.compile(rf'出生(?:日期|年月)?{_SEP}([0-9]{{4}})\s*[-/.年]\s*([0-9]{{1,2}})(?:\s*[-/.月]\s*([0-9]{{1,2}}))?')
_GENDER = re.compile(rf'性\s*别{_SEP}(男|女)')
_NATIONALITY = re.compile(rf'民\s*族{_SEP}([一-龥]{{1,5}}?族?)(?=\s|$|[，,;；|])')
_CITY = re.compile(rf'(?:现居住城市|现居城市|现居住地|居住地|所在城市|现居|城市){_SEP}([一-龥]{{2,12}})')
_PHONE = re.compile(r'(?<![0-9])(1[3-9][0-9]{9})(?![0-9])')
_EMAIL = re.compile(r'[^\s@:：]+@[^\s@]+\.[A-Za-z]{2,}')

_EDUCATION_HEADINGS = ('教育背景', '教育经历', '学历')
_EXPERIENCE_HEADINGS = ('工作经历', '工作经验', '实习经历')
_ALL_HEADINGS = (
    *_EDUCATION_HEADINGS,
    *_EXPERIENCE_HEADINGS,
    '项目经验',
    '项目经历',
    '专业技能',
    '技能',
    '自我评价',
    '个人简介',
    '获奖情况',
    '证书',
)
_SECTION_LIMIT = 500

# Lines that are section titles or labels, never a bare name.
_NOT_A_NAME = frozenset({'个人简历', '简历', '基本信息', '个人信息', *_ALL_HEADINGS})


class ResumeInfo(WireModel):
    """Fields found in a resume; None where absent."""

    name: str | None = None
    age: str | None = None
    id_card: str | None = None
    birth_date: str | None = None
    gender: str | None = None
    nationality: str | None = None
    city: str | None = None
    phone: str | None = None
    email: str | None = None
    education: str | None = None
    experience: str | None = None


def extract_resume_info(text: str, *, today: datetime.date | None = None) -> ResumeInfo:
    """Extract contact and profile fields from resume text.

    Args:
        text: Plain text of the resume.
        today: Reference date for deriving age. Defaults to today.
    """
    today = today or datetime.date.today()

    id_card = _first_group(_NATIONAL_ID, text)
    birth = _birth_from_label(text) or (_birth_from_id(id_card) if id_card else None)
    age = _age_from_label(text) or (_age_on(birth, today) if birth else None)
    gender = _first_group(_GENDER, text) or (_gender_from_id(id_card) if id_card else None)

    info = ResumeInfo(
        name=_name(text),
        age=age,
        id_card=id_card.upper() if id_card else None,
        birth_date=birth.isoformat() if birth else None,
        gender=gender,
        nationality=_first_group(_NATIONALITY, text),
        city=_first_group(_CITY, text),
        phone=_first_group(_PHONE, text),
        email=_match(_EMAIL, text),
        education=_section(text, _EDUCATION_HEADINGS),
        experience=_section(text, _EXPERIENCE_HEADINGS),
    )
    found = [name for name, value in info if value is not None]
    logger.debug(f'Resume fields found: {found}')
    return info


def _match(pattern: re.Pattern[str], text: str) -> str | None:
    match = pattern.search(text)
    return match.group(0) if match else None


def _first_group(pattern: re.Pattern[str], text: str) -> str | None:
    match = pattern.search(text)
    if match is None:
        return None
    return next((group.strip() for group in match.groups() if group), None)


def _name(text: str) -> str | None:
    labelled = _first_group(_NAME, text)
    if labelled:
        return labelled
    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue
        if line not in _NOT_A_NAME and _BARE_NAME_LINE.fullmatch(line):
            return line
    return None


def _birth_from_label(text: str) -> datetime.date | None:
    match = _BIRTH_DATE.search(text)
    if match is None:
        return None
    year, month, day = match.group(1), match.group(2), match.group(3) or '1'
    return _safe_date(int(year), int(month), int(day))


def _birth_from_id(id_card: str) -> datetime.date | None:
    return _safe_date(int(id_card[6:10]), int(id_card[10:12]), int(id_card[12:14]))


def _gender_from_id(id_card: str) -> str:
    # 17th digit: odd for male, even for female
    return '男' if int(id_card[16]) % 2 == 1 else '女'


def _age_from_label(text: str) -> str | None:
    return _first_group(_AGE, text)


def _age_on(birth: datetime.date, today: datetime.date) -> str | None:
    years = today.year - birth.year - ((today.month, today.day) < (birth.month, birth.day))
    return str(years) if years >= 0 else None


def _safe_date(year: int, month: int, day: int) -> datetime.date | None:
    try:
        return datetime.date(year, month, day)
    except ValueError:
        return None


def _section(text: str, headings: tuple[str, ...]) -> str | None:
    """Body of the first section titled with one of ``headings``, up to the next known heading."""
    lines = text.splitlines()
    for index, line in enumerate(lines):
        stripped = line.strip().rstrip(':：')
        if stripped not in headings:
            continue
        body: list[str] = []
        for following in lines[index + 1 :]:
            candidate = following.strip()
            if candidate.rstrip(':：') in _ALL_HEADINGS:
                break
            if candidate:
                body.append(candidate)
        content = ' '.join(body)
        return content[:_SECTION_LIMIT] or None
    return None
