"""Lexical Field Extraction Service for QuoteDesk.

Turns one free-form customer reply into a sparse ExtractionResult.

Keyword families are matched at word starts, so short typo tokens never
fire inside unrelated words. Several fields compete for "a number in the
text" (dimensions, deck height, area, budget, phone, postcode); they are
resolved by evaluation order plus the field currently being asked.

Extraction never raises: anything not matched unambiguously is omitted.
"""

import re
from typing import Any, Dict, Iterable, Optional, Pattern, Tuple

import structlog
from pydantic import ValidationError as PydanticValidationError

from models.conversation import ExtractionResult
from models.fields import IntakeField, MaterialTier, ServiceType, SlopeLevel, SubBaseType

logger = structlog.get_logger()


def _keywords(*words: str) -> Pattern:
    """Compile a keyword family matched at the start of a word."""
    alternatives = "|".join(re.escape(w) for w in sorted(set(words), key=len, reverse=True))
    return re.compile(rf"(?<![a-z0-9])(?:{alternatives})")


def _matches(pattern: Optional[Pattern], msg: str) -> bool:
    return bool(pattern and pattern.search(msg))


# =============================================================================
# SERVICE KEYWORDS (priority chain, first match wins)
# =============================================================================

SERVICE_KEYWORDS: Tuple[Tuple[ServiceType, Pattern], ...] = (
    (ServiceType.HARDSCAPING, _keywords(
        "patio", "paving", "hardscap", "hard landscap", "pave", "paver", "flagstone", "flag",
        "slab", "brick", "stonework", "stone work", "stone paving", "courtyard", "terrace",
        # typos and phonetic spellings
        "paty", "patyo", "pato", "paio", "ptio", "pavimg", "pavong", "pavin", "pavng", "pving",
        "payshio", "payving", "paytio", "hardlanscing", "hardlscaping", "hardscpaing",
    )),
    (ServiceType.DECKING, _keywords(
        "deck", "dek", "dck", "decc", "deeking", "wood platform", "timber platform",
        "raised platform",
    )),
    (ServiceType.MOWING, _keywords(
        "mow", "moing", "mawing", "lawn", "lwn", "lwan", "grass", "gras", "grss", "strim",
        "garden maintenance", "keep tidy",
    )),
    (ServiceType.PLANTING, _keywords(
        "plant", "plnat", "palnt", "flower", "flowr", "shrub", "shrbs", "flower bed", "border",
        "vegetation", "greenery", "herbaceous", "perennial",
    )),
    (ServiceType.FENCING, _keywords(
        "fence", "fencing", "fense", "fance", "fencng", "fencig", "hedge", "hegde", "hdge",
        "boundary", "privacy screen", "enclosure", "perimeter", "fence panel",
    )),
    (ServiceType.FRAMING, _keywords(
        "pergola", "pergolla", "pergla", "gazebo", "gazbo", "gazzebo", "arbor", "arbour",
        "canopy", "trellis", "archway", "outdoor structure", "timber frame", "garden frame",
    )),
    (ServiceType.SOFTSCAPING, _keywords(
        "landscap", "land scap", "lanscap", "landscpe", "landscpaing", "softscap", "soft scap",
        "garden", "gardn", "gardan", "outdoor space", "outdoor design", "green space",
    )),
)


# =============================================================================
# MATERIAL TIER KEYWORDS (standard, then luxury, then premium)
# =============================================================================

TIER_KEYWORDS: Tuple[Tuple[MaterialTier, Pattern], ...] = (
    (MaterialTier.STANDARD, _keywords(
        "standard", "standrd", "basic", "baic", "cheap", "cheep", "concrete", "conrete",
        "softwood", "softwod", "soft wood", "container plant", "cut and collect", "cut & collect",
        "normal", "regular", "simple", "ordinary", "affordable", "economical", "cost effective",
        "on a budget", "budget option", "budget friendly", "budget-friendly", "budjet",
        "save money", "inexpensive", "not expensive", "lower cost", "entry level", "starter",
        "essential",
    )),
    (MaterialTier.LUXURY, _keywords(
        "luxury", "luxary", "luxry", "high-end", "high end", "ipe", "hardwood", "hard wood",
        "porcelain", "porcelin", "cedar", "ceadar", "full grounds", "full maintenance",
        "architectural", "best", "finest", "high quality", "top quality", "top tier",
        "top end", "top of the range", "top of the line", "high spec", "upscale", "executive",
        "deluxe", "exclusive", "bespoke", "spare no expense",
    )),
    (MaterialTier.PREMIUM, _keywords(
        "premium", "premum", "preimum", "composite", "composit", "sandstone", "sandston",
        "mid", "middle", "slat", "precision", "edging", "specimen", "speciman", "engineered",
        "enginered", "decent", "decnt", "good quality", "reasonable quality", "solid quality",
        "well made", "durable", "good but not crazy",
    )),
)


# =============================================================================
# SITE CONDITION KEYWORDS
# =============================================================================


class _BooleanCue:
    """Negative and affirmative phrase families for one yes/no field.

    Strong phrases apply regardless of context; weak cues only while the
    field is being asked.
    """

    def __init__(
        self,
        strong_negative: Iterable[str],
        strong_positive: Iterable[str],
        weak_negative: Iterable[str] = (),
        weak_positive: Iterable[str] = (),
    ):
        self.strong_negative = _keywords(*strong_negative)
        self.strong_positive = _keywords(*strong_positive)
        self.weak_negative = _keywords(*weak_negative) if weak_negative else None
        self.weak_positive = _keywords(*weak_positive) if weak_positive else None

    def evaluate(self, msg: str, asked: bool) -> Optional[bool]:
        if self.strong_negative.search(msg):
            return False
        if self.strong_positive.search(msg):
            return True
        if not asked:
            return None
        if _matches(self.weak_negative, msg):
            return False
        if _matches(self.weak_positive, msg):
            return True
        if BARE_NO.search(msg):
            return False
        if BARE_YES.search(msg):
            return True
        return None


BARE_YES = re.compile(
    r"^(?:yes|yep|yeah|yeh|yea|ye|yup|y|sure|ok|okay|definitely|absolutely|of course|correct|"
    r"it does|there is)(?![a-z])"
)
BARE_NO = re.compile(r"^(?:no|nope|nah|na|n|not really|negative)(?![a-z])")

EXCAVATOR_CUES = _BooleanCue(
    strong_negative=(
        "narrow", "too narrow", "not wide enough", "won't fit", "wont fit", "can't fit",
        "cant fit", "cannot fit", "doesn't fit", "wouldn't fit", "won't get through",
        "no excavator", "no digger", "no machine access", "no access", "restricted access",
        "limited access", "difficult access", "tight access", "tight squeeze", "too tight",
        "side passage", "alley", "small gate", "through the house", "70cm", "80cm",
    ),
    strong_positive=(
        "wide access", "good access", "easy access", "open access", "plenty of room",
        "wide enough", "can get through", "machine access", "digger access", "excavator access",
        "it fits", "will fit", "should fit", "fits through",
    ),
    weak_negative=("tight", "can't", "cant", "cannot", "restricted", "not sure", "unsure"),
    weak_positive=("fits", "wide", "accessible", "no problem", "there is", "it can"),
)

DRIVEWAY_CUES = _BooleanCue(
    strong_negative=(
        "no driveway", "no drive", "don't have a drive", "dont have a drive",
        "haven't got a drive", "no off street", "no off-street", "street parking",
        "road parking", "on-street", "public road", "skip permit",
    ),
    strong_positive=(
        "driveway", "have a drive", "got a drive", "front drive", "off street", "off-street",
        "own parking", "private parking", "skip on the drive",
    ),
    weak_negative=("on the street", "on street", "street", "on the road", "permit",
                   "don't have", "dont have", "haven't got", "no space"),
    weak_positive=("parking", "private", "room for a skip", "space for a skip", "plenty of space"),
)

DEMOLITION_CUES = _BooleanCue(
    strong_negative=(
        "nothing to remove", "no removal", "no demolition", "nothing there", "nothing to take",
        "fresh site", "blank slate", "bare ground", "bare soil", "no existing", "new build",
        "clean site", "fresh start",
    ),
    strong_positive=(
        "remove existing", "removal needed", "need to remove", "needs removing",
        "to be removed", "tear out", "rip out", "strip out", "break out", "pull up", "take up",
        "get rid of", "demolish", "demolis", "demolition", "old patio", "old deck",
        "existing patio", "existing deck", "existing paving", "existing slabs",
    ),
    weak_negative=("nothing", "new", "fresh", "clean", "clear", "empty"),
    weak_positive=("existing", "exsting", "remove", "remov", "old", "something there",
                   "a little", "some"),
)

# Slope: strong flat, explicit moderate, steep, then generic slope words
SLOPE_FLAT = _keywords(
    "flat", "no slope", "no gradient", "perfectly level", "totally level", "completely level",
    "dead level", "level ground", "horizontal",
)
SLOPE_FLAT_WEAK = _keywords("level", "even")
SLOPE_MODERATE = _keywords(
    "not too steep", "not very steep", "not that steep", "moderate", "gentle", "slight",
    "gradual", "mild slope", "bit of a slope", "bit sloped", "some slope",
)
SLOPE_STEEP = _keywords(
    "steep", "steap", "hill", "sharp slope", "very slop", "quite slop", "incline",
)
SLOPE_GENERIC = _keywords("slope", "sloping", "slant", "uneven")


# =============================================================================
# NUMERIC PATTERNS
# =============================================================================

_NUM = r"(\d+(?:[.,]\d+)?)"
_LEN_UNIT = r"(?:metres?|meters?|m)"

DIMENSION_PAIR = re.compile(
    rf"(?<![\d.,]){_NUM}\s*{_LEN_UNIT}?\s*(?:x|by|×|\*)\s*{_NUM}",
    re.IGNORECASE,
)

HEIGHT_AFTER = re.compile(
    rf"(?<![\d.,]){_NUM}\s*(metres?|meters?|cm|m)?\s*"
    r"(?:high|tall|in height|off (?:the )?ground|above (?:the )?ground|from (?:the )?ground)",
    re.IGNORECASE,
)
HEIGHT_BEFORE = re.compile(
    rf"(?:height|high)(?:\s*(?:of|is|will be|would be|about|around|roughly|approx|:))*\s*"
    rf"{_NUM}\s*(metres?|meters?|cm|m)?(?![a-z0-9])",
    re.IGNORECASE,
)
HEIGHT_GROUND_LEVEL = _keywords("ground level", "flush", "at ground", "low level")

AREA = re.compile(
    rf"(?<![\d.,]){_NUM}\s*(?:square\s*(?:metres?|meters?|m)|sq\.?\s*(?:metres?|meters?|m)|"
    r"m2|m²|sqm|(?:metres?|meters?|m)\s*squared)(?![a-z0-9])",
    re.IGNORECASE,
)
LINEAR = re.compile(
    rf"(?<![\d.,]){_NUM}\s*(?:linear\s*(?:metres?|meters?|m)|lm|metres?|meters?|m)(?![a-z0-9²])",
    re.IGNORECASE,
)
FENCE_MENTION = _keywords("fence", "fencing", "hedge", "hedging")

_FILLER = r"(?:(?:it'?s|it is|its|about|around|roughly|approx(?:imately)?\.?|maybe|probably|say|~|total)\s*)*"
BARE_AREA = re.compile(
    rf"^{_FILLER}{_NUM}\s*(?:square\s*(?:metres?|meters?|m)|sq\.?\s*m|m2|m²|sqm|metres?|meters?|m)?"
    r"\s*(?:total|in total|or so)?[.!]?$",
    re.IGNORECASE,
)
BARE_HEIGHT = re.compile(
    rf"^{_FILLER}{_NUM}\s*(metres?|meters?|cm|m)?\s*(?:or so)?[.!]?$",
    re.IGNORECASE,
)

WEEKS = re.compile(r"(?<![a-z0-9])(\d+|a|one|two|three|four|a few|a couple of|couple of|few)\s*weeks?")
MONTHS = re.compile(r"(?<![a-z0-9])(\d+|a|one|two|three|four|six|a few|a couple of|couple of|few)\s*months?")
OVERGROWTH_CONTEXT = _keywords("ago", "since", "cut", "mow", "trim", "last", "not been", "hasn't been", "hasnt been")
OVERGROWN_TRUE = _keywords(
    "overgrown", "over grown", "long grass", "not been cut", "hasn't been cut", "hasnt been cut",
    "not cut", "ages", "long time", "knee high", "jungle",
)
OVERGROWN_FALSE = _keywords(
    "last week", "recent", "yesterday", "few days", "regularly", "every week", "weekly",
    "well kept",
)
OVERGROWN_WEAK_TRUE = _keywords("a while", "while")

NUMBER_WORDS: Dict[str, int] = {
    "no": 0, "zero": 0, "none": 0, "a": 1, "an": 1, "one": 1, "single": 1, "two": 2,
    "a couple of": 2, "couple of": 2, "three": 3, "four": 4, "five": 5, "six": 6,
    "a few": 3, "few": 3,
}
GATES = re.compile(
    r"(?<![a-z0-9])(\d+|no|zero|one|a|an|single|two|three|four|five|six)\s+gates?(?![a-z])"
)
BARE_GATES = re.compile(r"^(\d+|none|zero|one|two|three|four|five|six)[.!]?$")


# =============================================================================
# CONTACT AND LOGISTICS PATTERNS
# =============================================================================

EMAIL = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")
PHONE = re.compile(r"(?<![\w£$€])(?:\+44[\s-]?(?:\(0\)[\s-]?)?|0)\d(?:[\s-]?\d){7,10}(?!\d)")
MIN_PHONE_DIGITS = 10

INTRO = re.compile(
    r"(?<![a-z])(my name is|my name's|name's|call me|i am|i'm)\s+"
    r"([A-Za-z][A-Za-z'\-.]*(?:\s+[A-Za-z][A-Za-z'\-.]*){0,3})",
    re.IGNORECASE,
)
NAME_STOPWORDS = frozenset({
    "and", "i", "im", "i'm", "my", "from", "here", "but", "please", "thanks", "thank",
    "looking", "want", "would", "need", "in", "at", "the", "a", "with", "on", "back",
    "when", "tomorrow", "later", "about",
})
INTERROGATIVES = frozenset({
    "what", "how", "why", "when", "where", "who", "which", "can", "could", "do", "does",
    "is", "are", "will", "would", "should", "whats", "what's", "hows", "how's",
})
QUESTION_WORDS = frozenset({
    "what", "how", "why", "when", "where", "who", "which", "whats", "what's", "hows", "how's",
})
NON_ANSWER = re.compile(
    r"\b(?:not sure|unsure|don'?t know|dont know|do not know|dunno|no idea|rather not|prefer not)\b",
    re.IGNORECASE,
)
NOT_A_NAME = frozenset({
    "yes", "no", "ok", "okay", "sure", "hi", "hello", "hey", "thanks", "thank you", "skip",
    "nope", "yep", "yeah", "maybe", "none", "n/a", "na",
})
NAME_WORD = re.compile(r"^[A-Za-z][A-Za-z'\-.]*$")

BUDGET = re.compile(
    r"(?<![\w.,])(?P<currency>[£$€])?\s*"
    r"(?P<number>\d{1,3}(?:,\d{3})+(?:\.\d+)?|\d+(?:\.\d+)?)\s*"
    r"(?P<suffix>k|grand|thousand)?(?![\w])",
    re.IGNORECASE,
)
BUDGET_MARKERS = _keywords("pound", "quid", "gbp", "euro", "budget")
BUDGET_UNIT_FOLLOWS = re.compile(
    r"^\s*(?:m2|m²|m(?![a-z])|sq|square|ft|feet|foot|cm|mm|x(?![a-z])|by(?![a-z])|×|met(?:er|re)|"
    r"deck|patio|paver|slab|gate|week|month|day|year|hour|hr|%|st(?![a-z])|nd(?![a-z])|"
    r"rd(?![a-z])|th(?![a-z]))",
    re.IGNORECASE,
)
BUDGET_PAIR_PRECEDES = re.compile(r"(?:x|by|×|\*)\s*$", re.IGNORECASE)
MIN_BUDGET = 100
MAX_BUDGET = 9_999_999

POSTCODE_STRICT = re.compile(r"\b([A-Z]{1,2}\d[A-Z\d]?)\s*(\d[A-Z]{2})\b", re.IGNORECASE)
POSTCODE_LOOSE = re.compile(r"\b([A-Za-z0-9]{3,10})\b")

START_TIMING = re.compile(
    r"\b(asap|as soon as possible|immediately|right away|straight away|"
    r"(?:next|this) (?:week|month|year|spring|summer|autumn|winter)|"
    r"in (?:the )?(?:spring|summer|autumn|fall|winter|new year)|"
    r"in (?:\d+|a|one|two|three|four|six|a few|a couple of) (?:weeks?|months?)|"
    r"(?:in |by )(?:january|february|march|april|may|june|july|august|september|october|"
    r"november|december)|"
    r"(?:january|february|march|april|june|july|august|september|october|november|december))\b"
)

SOIL_TYPES: Tuple[Tuple[Pattern, str], ...] = (
    (re.compile(r"\bclay(?:ey)?\b"), "clay"),
    (re.compile(r"\b(?:sandy|sand)\b(?! ?stone)"), "sandy"),
    (re.compile(r"\bchalk(?:y)?\b"), "chalky"),
    (re.compile(r"\bloam(?:y)?\b"), "loam"),
    (re.compile(r"\bpeat(?:y)?\b"), "peaty"),
    (re.compile(r"\b(?:rocky|stony)\b"), "rocky"),
    (re.compile(r"\b(?:waterlogged|boggy|marshy)\b"), "waterlogged"),
)

SUB_BASE_HARDSCAPE = _keywords(
    "existing patio", "existing paving", "existing slabs", "existing concrete", "old patio",
    "old paving", "old slabs", "old concrete", "tarmac", "currently paved", "block paving",
)
SUB_BASE_DIRT = _keywords("bare ground", "bare soil", "dirt", "turf", "currently grass", "currently lawn", "soil")

DRAINAGE_NO = _keywords("no drainage", "don't need drainage", "dont need drainage")
DRAINAGE_YES = _keywords("drainage", "drain", "soakaway", "puddl", "water pooling", "waterlogged")
LIGHTING_NO = _keywords("no lighting", "no lights", "don't need lighting", "dont need lighting")
LIGHTING_YES = _keywords("led light", "led strip", "leds", "lighting", "lights", "uplighter", "spotlight", "downlight")


# =============================================================================
# HELPERS
# =============================================================================


def _to_float(raw: str) -> float:
    """Parse a number that may use a comma as decimal separator."""
    return float(raw.replace(",", "."))


def _normalize(utterance: Any) -> Tuple[str, str]:
    """Return (original text, lower-cased text) with typographic quotes folded."""
    text = utterance if isinstance(utterance, str) else ""
    text = text.replace("’", "'").replace("‘", "'").strip()
    return text, text.lower()


def coerce_extraction(data: Dict[str, Any]) -> ExtractionResult:
    """Build an ExtractionResult, dropping any field that fails validation.

    Args:
        data: Candidate field values (may come from a remote model)

    Returns:
        ExtractionResult holding only the fields that validated
    """
    candidate = {k: v for k, v in data.items() if k in ExtractionResult.model_fields and v is not None}
    for _ in range(len(candidate) + 1):
        try:
            return ExtractionResult.model_validate(candidate)
        except PydanticValidationError as e:
            bad = {err["loc"][0] for err in e.errors() if err.get("loc")}
            if not bad:
                break
            logger.debug("extraction_fields_dropped", fields=sorted(str(b) for b in bad))
            candidate = {k: v for k, v in candidate.items() if k not in bad}
    return ExtractionResult()


# =============================================================================
# FIELD EXTRACTORS
# =============================================================================


def extract_service(msg: str) -> Optional[ServiceType]:
    for service, pattern in SERVICE_KEYWORDS:
        if pattern.search(msg):
            return service
    return None


def extract_material_tier(msg: str) -> Optional[MaterialTier]:
    for tier, pattern in TIER_KEYWORDS:
        if pattern.search(msg):
            return tier
    return None


def extract_slope(msg: str, asked: bool) -> Optional[SlopeLevel]:
    if SLOPE_FLAT.search(msg):
        return SlopeLevel.FLAT
    if SLOPE_MODERATE.search(msg):
        return SlopeLevel.MODERATE
    if SLOPE_STEEP.search(msg):
        return SlopeLevel.STEEP
    if SLOPE_GENERIC.search(msg):
        return SlopeLevel.MODERATE
    if asked and SLOPE_FLAT_WEAK.search(msg):
        return SlopeLevel.FLAT
    return None


def _height_value(raw: str, unit: Optional[str]) -> Optional[float]:
    value = _to_float(raw)
    if unit and unit.lower() == "cm":
        value = value / 100
    if 0 < value < 10:
        return value
    return None


def extract_deck_height(msg: str, asked: bool) -> Optional[float]:
    """Deck height from explicit height vocabulary, or a small bare number when asked."""
    for pattern in (HEIGHT_AFTER, HEIGHT_BEFORE):
        match = pattern.search(msg)
        if match:
            value = _height_value(match.group(1), match.group(2))
            if value is not None:
                return value
    if asked:
        match = BARE_HEIGHT.match(msg)
        if match:
            value = _height_value(match.group(1), match.group(2))
            if value is not None and value < 3.0:
                return value
        if HEIGHT_GROUND_LEVEL.search(msg):
            return 0.1
    return None


def extract_geometry(msg: str, current_field: Optional[IntakeField], height_found: bool) -> Dict[str, float]:
    """Length and width, or a single area. Pairs take precedence."""
    pair = DIMENSION_PAIR.search(msg)
    if pair:
        length, width = _to_float(pair.group(1)), _to_float(pair.group(2))
        if length > 0 and width > 0:
            return {"length": length, "width": width}

    if height_found:
        return {}

    area = AREA.search(msg)
    if area:
        value = _to_float(area.group(1))
        return {"area": value} if value > 0 else {}

    if FENCE_MENTION.search(msg):
        linear = LINEAR.search(msg)
        if linear:
            value = _to_float(linear.group(1))
            return {"area": value} if value > 0 else {}

    if current_field == IntakeField.DIMENSIONS:
        bare = BARE_AREA.match(msg)
        if bare:
            value = _to_float(bare.group(1))
            return {"area": value} if value > 0 else {}

    return {}


def _count_from_word(raw: str) -> Optional[int]:
    if raw.isdigit():
        return int(raw)
    return NUMBER_WORDS.get(raw)


def extract_overgrown(msg: str, asked: bool) -> Optional[bool]:
    """More than two weeks since the last cut means overgrown."""
    timed = asked or bool(OVERGROWTH_CONTEXT.search(msg))
    if timed:
        months = MONTHS.search(msg)
        if months:
            return True
        weeks = WEEKS.search(msg)
        if weeks:
            count = _count_from_word(weeks.group(1))
            if count is not None:
                return count > 2
    if OVERGROWN_TRUE.search(msg):
        return True
    if OVERGROWN_FALSE.search(msg):
        return False
    if asked:
        if OVERGROWN_WEAK_TRUE.search(msg):
            return True
        if BARE_YES.search(msg):
            return True
        if BARE_NO.search(msg):
            return False
    return None


def extract_gate_count(msg: str, asked: bool) -> Optional[int]:
    match = GATES.search(msg)
    if match:
        return _count_from_word(match.group(1))
    if asked:
        bare = BARE_GATES.match(msg)
        if bare:
            return _count_from_word(bare.group(1))
        if BARE_NO.search(msg):
            return 0
    return None


def extract_phone(text: str) -> Optional[str]:
    for match in PHONE.finditer(text):
        digits = re.sub(r"\D", "", match.group(0))
        if len(digits) >= MIN_PHONE_DIGITS:
            return match.group(0).strip()
    return None


def extract_email(text: str) -> Optional[str]:
    match = EMAIL.search(text)
    return match.group(0).lower() if match else None


def _clean_name(words: Iterable[str]) -> Optional[str]:
    kept = []
    for word in words:
        if word.lower().strip(".") in NAME_STOPWORDS:
            break
        kept.append(word)
    name = " ".join(kept).strip(" .")
    return name or None


def extract_name(text: str, msg: str, asked: bool) -> Tuple[Optional[str], bool]:
    """Full name and whether it came from a self-introduction.

    Bare names are only taken while the name is being asked, and only from
    short replies with no digits, no '@' and no question words.
    """
    intro = INTRO.search(text)
    if intro:
        phrase = intro.group(1).lower()
        words = intro.group(2).split()
        if phrase in ("i am", "i'm") and not words[0][0].isupper():
            intro = None
        else:
            name = _clean_name(words)
            if name:
                return name, True

    if not asked:
        return None, False

    candidate = text.strip().rstrip(".!")
    words = candidate.split()
    if not 1 <= len(words) <= 4 or not 2 <= len(candidate) <= 50:
        return None, False
    if any(ch.isdigit() for ch in candidate) or "@" in candidate or "?" in candidate:
        return None, False
    lowered = [w.lower().strip(",") for w in words]
    if lowered[0] in INTERROGATIVES or any(w in QUESTION_WORDS for w in lowered):
        return None, False
    if msg.rstrip(".!") in NOT_A_NAME or NON_ANSWER.search(candidate):
        return None, False
    if not all(NAME_WORD.match(w) for w in words):
        return None, False
    return candidate, False


def extract_budget(
    text: str,
    msg: str,
    phone_found: bool,
    current_field: Optional[IntakeField],
) -> Tuple[Optional[int], bool]:
    """Budget amount and whether it carried an explicit marker.

    Numbers followed by a unit, numbers inside a phone number, numbers with
    a leading zero and out-of-range values are rejected.
    """
    marker_in_text = bool(BUDGET_MARKERS.search(msg))

    for match in BUDGET.finditer(text):
        currency = match.group("currency")
        number = match.group("number")
        suffix = (match.group("suffix") or "").lower()
        explicit = bool(currency) or marker_in_text

        if BUDGET_UNIT_FOLLOWS.match(text[match.end():]):
            continue
        if BUDGET_PAIR_PRECEDES.search(text[:match.start()]):
            continue
        if phone_found and not explicit:
            continue
        if number.startswith("0") and not currency:
            continue
        if current_field == IntakeField.POSTAL_CODE and not explicit:
            continue

        amount = float(number.replace(",", ""))
        if suffix:
            amount *= 1000
        amount = int(round(amount))
        if MIN_BUDGET <= amount <= MAX_BUDGET:
            return amount, explicit
    return None, False


def extract_postcode(text: str, asked: bool) -> Tuple[Optional[str], bool]:
    """Postcode, strictly matched or loosely accepted while being asked."""
    strict = POSTCODE_STRICT.search(text)
    if strict:
        return f"{strict.group(1).upper()} {strict.group(2).upper()}", True
    if asked:
        for match in POSTCODE_LOOSE.finditer(text):
            token = match.group(1)
            if any(ch.isdigit() for ch in token):
                return token.upper(), False
    return None, False


def extract_start_timing(msg: str) -> Optional[str]:
    match = START_TIMING.search(msg)
    return match.group(1) if match else None


def extract_soil_note(msg: str) -> Optional[str]:
    for pattern, label in SOIL_TYPES:
        if pattern.search(msg):
            return label
    return None


def extract_sub_base(msg: str) -> Optional[SubBaseType]:
    if SUB_BASE_HARDSCAPE.search(msg):
        return SubBaseType.HARDSCAPE
    if SUB_BASE_DIRT.search(msg):
        return SubBaseType.DIRT
    return None


def _upsell(msg: str, negative: Pattern, positive: Pattern) -> Optional[bool]:
    if negative.search(msg):
        return False
    if positive.search(msg):
        return True
    return None


# =============================================================================
# PUBLIC API
# =============================================================================


def extract(utterance: str, current_field: Optional[IntakeField]) -> ExtractionResult:
    """Extract every recognisable field from one customer reply.

    Args:
        utterance: Raw reply text
        current_field: Field the last question asked about (None if nothing asked)

    Returns:
        Sparse ExtractionResult. Never raises.
    """
    text, msg = _normalize(utterance)
    if not msg:
        return ExtractionResult()

    def asked(field: IntakeField) -> bool:
        return current_field == field

    fields: Dict[str, Any] = {}

    fields["service"] = extract_service(msg)

    deck_height = extract_deck_height(msg, asked(IntakeField.DECK_HEIGHT))
    fields["deck_height"] = deck_height
    fields.update(extract_geometry(msg, current_field, deck_height is not None))

    fields["material_tier"] = extract_material_tier(msg)
    fields["excavator_access"] = EXCAVATOR_CUES.evaluate(msg, asked(IntakeField.EXCAVATOR_ACCESS))
    fields["driveway_access"] = DRIVEWAY_CUES.evaluate(msg, asked(IntakeField.DRIVEWAY))
    fields["has_demolition"] = DEMOLITION_CUES.evaluate(msg, asked(IntakeField.DEMOLITION))
    fields["slope"] = extract_slope(msg, asked(IntakeField.SLOPE))
    fields["sub_base"] = extract_sub_base(msg)

    fields["is_overgrown"] = extract_overgrown(msg, asked(IntakeField.OVERGROWN))
    fields["gate_count"] = extract_gate_count(msg, asked(IntakeField.GATE_COUNT))

    fields["contact_email"] = extract_email(text)
    phone = extract_phone(text)
    fields["contact_phone"] = phone
    name, introduced = extract_name(text, msg, asked(IntakeField.FULL_NAME))
    fields["full_name"] = name
    fields["self_introduction"] = introduced

    budget, explicit = extract_budget(text, msg, phone is not None, current_field)
    fields["user_budget"] = budget
    fields["explicit_budget"] = explicit

    postcode, strict = extract_postcode(text, asked(IntakeField.POSTAL_CODE))
    fields["postal_code"] = postcode
    fields["strict_postcode"] = strict

    fields["start_timing"] = extract_start_timing(msg)
    fields["soil_note"] = extract_soil_note(msg)
    fields["wants_drainage"] = _upsell(msg, DRAINAGE_NO, DRAINAGE_YES)
    fields["wants_led_lighting"] = _upsell(msg, LIGHTING_NO, LIGHTING_YES)

    result = coerce_extraction(fields)
    logger.debug(
        "fields_extracted",
        current_field=current_field.value if current_field else None,
        fields=result.merge_fields(),
        confidence=result.confidence,
    )
    return result
