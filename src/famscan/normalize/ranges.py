"""Range parsing for bucket labels: "10-12", "10 to 12", "between 10 and 12", "$10k-$20k", "3.0-3.5%".

Units are inferred from a "$" prefix or a "%", "°c", "°f", "c", "f" suffix; magnitude suffixes
are k=1,000 and m=1,000,000. Matchers are tried in order over a pre-normalized string (dash
variants folded to "-", whitespace collapsed).
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass

from famscan.models.family import ParsedRange, RangeParseResult
from famscan.normalize.numbers import format_number

_DASHES_RE = re.compile("[\u2012\u2013\u2014\u2212]")
_SPACES_RE = re.compile(r"\s+")

_TOKEN = r"\$?-?\d[\d,]*(?:\.\d+)?[km]?(?:%|°c|°f|c|f)?"
BETWEEN_RE = re.compile(r"between\s+(?P<a>\S+)\s+and\s+(?P<b>\S+)", re.IGNORECASE)
DASH_RE = re.compile(rf"(?P<a>{_TOKEN})\s*(?:-|to)\s*(?P<b>{_TOKEN})", re.IGNORECASE)

_VALUE_RE = re.compile(
    r"(?P<num>-?\d{1,3}(?:,\d{3})*(?:\.\d+)?|-?\d+(?:\.\d+)?)(?P<mag>[km])?(?P<u>%|°c|°f|c|f)?",
    re.IGNORECASE,
)
_EDGE_PUNCT_RE = re.compile(r"^[(\"']+|[)\"',.?]+$")
_YEAR_TOKEN_RE = re.compile(r"\b(?:19|20)\d{2}\b")
_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?")

_MAGNITUDES = {"k": 1_000.0, "m": 1_000_000.0}
_UNIT_PREFERENCE = ("°c", "°f", "°", "$", "%")


@dataclass(frozen=True)
class ValueToken:
    value: float
    unit: str | None = None


@dataclass(frozen=True)
class GroupingSplit:
    """Title with its first range removed (base) and that range, if any."""

    base: str
    range: ParsedRange | None = None


@dataclass(frozen=True)
class RangeMatcher:
    """One recognized range form. Captures named groups a and b."""

    name: str
    pattern: re.Pattern[str]

    def search(self, text: str) -> re.Match[str] | None:
        return self.pattern.search(text)

    def parse(self, text: str) -> ParsedRange | None:
        m = self.search(text)
        if m is None:
            return None
        return parse_range_tokens(m.group("a"), m.group("b"))


MATCHERS: tuple[RangeMatcher, ...] = (
    RangeMatcher("between", BETWEEN_RE),
    RangeMatcher("dash", DASH_RE),
)


def normalize_text(text: str) -> str:
    """Fold dash variants to '-', collapse whitespace, trim."""
    return _SPACES_RE.sub(" ", _DASHES_RE.sub("-", text)).strip()


def parse_range_from_text(text: str) -> ParsedRange | None:
    """First range in text, or None. Season/year-looking spans are skipped."""
    cleaned = normalize_text(text)
    for matcher in MATCHERS:
        r = matcher.parse(cleaned)
        if r is not None and not is_likely_season_or_year_range(cleaned, r):
            return r
    return None


def parse_range_with_confidence(text: str) -> RangeParseResult | None:
    """Parse a range and attach a confidence score.

    +2 when a clean range form is present, +1 when the span is sane for its unit, -2 when the
    text carries extra non-year numbers besides the endpoints. Unit consistency across a family
    is scored later by the family builder.
    """
    cleaned = normalize_text(text)
    clean_form = any(matcher.search(cleaned) for matcher in MATCHERS)

    r = parse_range_from_text(cleaned)
    if r is None:
        return None

    confidence = 0
    reasons: list[str] = []
    if clean_form:
        confidence += 2
        reasons.append("clean_range_form")
    if r.high - r.low > 0 and is_sane_span(r, cleaned):
        confidence += 1
        reasons.append("sane_span")
    extra = count_extra_numbers(cleaned, r)
    if extra > 0:
        confidence -= 2
        reasons.append(f"extra_numbers({extra})")
    return RangeParseResult(range=r, confidence=confidence, reasons=tuple(reasons))


def remove_first_range_for_grouping(text: str) -> GroupingSplit:
    """Strip the first range-like substring so sibling buckets share a base title."""
    normalized = normalize_text(text)
    for matcher in MATCHERS:
        m = matcher.search(normalized)
        if m is None:
            continue
        r = parse_range_tokens(m.group("a"), m.group("b"))
        if r is not None and is_likely_season_or_year_range(normalized, r):
            return GroupingSplit(base=normalized.strip())
        base = _SPACES_RE.sub(" ", matcher.pattern.sub(" ", normalized, count=1)).strip()
        return GroupingSplit(base=base, range=r)
    return GroupingSplit(base=normalized.strip())


def parse_value_token(raw: str) -> ValueToken | None:
    """Parse one side of a range: optional '$' or '°', number, k/m suffix, unit suffix."""
    t = _strip_punct(raw)
    unit: str | None = None
    if t.startswith("$"):
        unit = "$"
        t = t[1:]
    if t.startswith("°"):
        unit = unit or "°"
        t = t[1:]

    m = _VALUE_RE.fullmatch(t)
    if m is None:
        return None
    try:
        n = float(m.group("num").replace(",", ""))
    except ValueError:
        return None
    if not math.isfinite(n):
        return None

    mag = (m.group("mag") or "").lower()
    u = (m.group("u") or "").lower()
    if u:
        unit = _merge_unit(unit, {"c": "°c", "f": "°f"}.get(u, u))
    return ValueToken(value=n * _MAGNITUDES.get(mag, 1.0), unit=unit)


def parse_range_tokens(a_raw: str, b_raw: str) -> ParsedRange | None:
    """Resolve two side tokens into a ParsedRange (min/max order), or None."""
    a = parse_value_token(a_raw)
    b = parse_value_token(b_raw)
    if a is None or b is None:
        return None

    # "$50k-$100": a lone magnitude suffix applies to a small bare value on the other side.
    a_k, a_m = _has_suffix(a_raw, "k"), _has_suffix(a_raw, "m")
    b_k, b_m = _has_suffix(b_raw, "k"), _has_suffix(b_raw, "m")
    av, bv = a.value, b.value
    if a_k and not b_k and not b_m and abs(bv) < 1000:
        bv *= 1_000
    if b_k and not a_k and not a_m and abs(av) < 1000:
        av *= 1_000
    if a_m and not b_m and not b_k and abs(bv) < 1000:
        bv *= 1_000_000
    if b_m and not a_m and not a_k and abs(av) < 1000:
        av *= 1_000_000

    low, high = min(av, bv), max(av, bv)
    if not math.isfinite(low) or not math.isfinite(high) or low == high:
        return None

    unit = choose_unit(a.unit, b.unit)
    label = f"{format_number(low)}-{format_number(high)}{unit or ''}"
    return ParsedRange(low=low, high=high, unit=unit, normalized_label=label)


def choose_unit(a: str | None, b: str | None) -> str | None:
    """Prefer °c over °f over a bare degree (dropped) over $ over %."""
    for pref in _UNIT_PREFERENCE:
        if a == pref or b == pref:
            return None if pref == "°" else pref
    return a or b


def is_likely_season_or_year_range(full_text: str, r: ParsedRange) -> bool:
    """Reject unit-less spans like '2025-26 season' or '2025-2026'."""
    if r.unit:
        return False
    t = full_text.lower()
    has_year = _YEAR_TOKEN_RE.search(t) is not None
    if "season" in t and has_year:
        return True
    if r.low >= 1900 and r.high <= 2100:
        return True
    if has_year and (r.low >= 1900 or r.high >= 1900) and (r.low < 100 or r.high < 100):
        return True
    return False


def is_sane_span(r: ParsedRange, full_text: str) -> bool:
    span = r.high - r.low
    abs_max = max(abs(r.high), abs(r.low))
    if r.unit == "%":
        return 0 < span <= 100 and r.low >= 0 and r.high <= 100
    if r.unit in ("°c", "°f"):
        return 0 < span <= 200 and abs_max <= 300
    if r.unit == "$":
        return 0 < span <= 50_000_000
    if is_likely_season_or_year_range(full_text, r):
        return False
    return 0 < span <= 5_000_000


def count_extra_numbers(text: str, r: ParsedRange) -> int:
    """Numbers in text that are neither 19xx/20xx years nor (approximately) an endpoint."""
    count = 0
    for token in _NUMBER_RE.findall(text):
        n = float(token)
        if n.is_integer() and 1900 <= n <= 2100:
            continue
        if abs(n - r.low) < 1e-9 or abs(n - r.high) < 1e-9:
            continue
        count += 1
    return count


def _strip_punct(s: str) -> str:
    return _EDGE_PUNCT_RE.sub("", s.strip()).strip()


def _has_suffix(raw: str, suffix: str) -> bool:
    return re.search(rf"{suffix}\b", _strip_punct(raw), re.IGNORECASE) is not None


def _merge_unit(existing: str | None, incoming: str) -> str:
    if not existing:
        return incoming
    if existing == "°" and incoming in ("°c", "°f"):
        return incoming
    return existing
