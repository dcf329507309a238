"""
Classical Track Metadata Parser

Rule-based extraction of classical-work attribution from Spotify track
titles and artist credits. Typical inputs:

    "Symphony No. 5 in C Minor, Op. 67: I. Allegro con brio"
    "Piano Sonata No. 14 in C-Sharp Minor, Op. 27 No. 2 "Moonlight": III. Presto agitato"
    "Beethoven: Symphony No. 9 in D Minor, Op. 125 "Choral": IV. Presto"
    "Symphony No. 94 in G Major, Hob. I:94 "Surprise" - II. Andante"

produce composer name, catalog system/number, key, form, nickname, year
composed, the work's formal name, and the movement number/title.

The parser is heuristic and side-effect free: it never raises on odd input
and never touches the database. It returns None when a title carries
neither a catalog number nor a recognizable form, since there is nothing to
attribute.
"""

import re
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from rapidfuzz import fuzz

from catalog_utils import strip_accents

logger = logging.getLogger(__name__)

# Minimum fuzzy score for an artist credit to count as a known composer
COMPOSER_MATCH_THRESHOLD = 90

# (canonical system, pattern). Each pattern's first group is the number.
# Single-letter systems are case-sensitive and need a digit after them so
# that keys such as "D Major" are not mistaken for Deutsch numbers.
_NUMBER = r'(\d+[a-z]?(?:/\d+)?(?:\s*,?\s*No\.?\s*\d+[a-z]?)?)'
CATALOG_PATTERNS = [
    ('Op', re.compile(r'\b(?:Op|Opus)\.?\s*' + _NUMBER, re.IGNORECASE)),
    ('BWV', re.compile(r'\bBWV\.?\s*' + _NUMBER)),
    ('Hob', re.compile(r'\bHob\.?\s*([IVXL]+[a-z]?\s*:\s*\d+[a-z]?)')),
    ('HWV', re.compile(r'\bHWV\.?\s*' + _NUMBER)),
    ('RV', re.compile(r'\bRV\.?\s*' + _NUMBER)),
    ('WoO', re.compile(r'\bWoO\.?\s*' + _NUMBER)),
    ('WAB', re.compile(r'\bWAB\.?\s*' + _NUMBER)),
    ('TrV', re.compile(r'\bTrV\.?\s*' + _NUMBER)),
    ('Sz', re.compile(r'\bSz\.?\s*' + _NUMBER)),
    ('BB', re.compile(r'\bBB\.?\s*' + _NUMBER)),
    ('FP', re.compile(r'\bFP\.?\s*' + _NUMBER)),
    ('Wq', re.compile(r'\bWq\.?\s*' + _NUMBER)),
    ('K', re.compile(r'\bKV?\.?\s*' + _NUMBER)),
    ('D', re.compile(r'\bD\.?\s*' + _NUMBER)),
    ('S', re.compile(r'\bS\.?\s*' + _NUMBER)),
    ('L', re.compile(r'\bL\.?\s*' + _NUMBER)),
    ('M', re.compile(r'\bM\.?\s*' + _NUMBER)),
]

# Longer names first where one contains another
FORMS = [
    'String Quartet', 'String Quintet', 'Piano Trio', 'Piano Quartet', 'Piano Quintet',
    'Concerto Grosso', 'Symphonic Poem', 'Tone Poem', 'Song Cycle', 'Stabat Mater',
    'Symphony', 'Sinfonia', 'Concerto', 'Sonatina', 'Sonata', 'Partita', 'Suite',
    'Quartet', 'Quintet', 'Sextet', 'Octet', 'Trio', 'Serenade', 'Divertimento',
    'Nocturne', 'Etude', 'Prelude', 'Fugue', 'Toccata', 'Fantasia', 'Fantasy',
    'Invention', 'Passacaglia', 'Chaconne', 'Ballade', 'Scherzo', 'Impromptu',
    'Mazurka', 'Polonaise', 'Waltz', 'Bagatelle', 'Rondo', 'Rhapsody', 'Variations',
    'Overture', 'Mass', 'Requiem', 'Magnificat', 'Motet', 'Cantata', 'Oratorio', 'Opera',
]
FORM_PATTERNS = [(form, re.compile(r'\b' + re.escape(form) + r's?\b', re.IGNORECASE)) for form in FORMS]
FORM_WORDS = {form.split()[-1].lower() for form in FORMS}

# Words that mark an artist credit as a performing group rather than a person
ENSEMBLE_WORDS = {
    'trio', 'quartet', 'quintet', 'sextet', 'septet', 'octet', 'nonet',
    'orchestra', 'orchestre', 'orchester', 'orquesta', 'philharmonic', 'philharmoniker',
    'philharmonia', 'symphony', 'sinfonia', 'sinfonietta', 'ensemble', 'consort',
    'choir', 'chorus', 'chor', 'singers', 'players', 'soloists', 'camerata', 'band',
}

KEY_PATTERN = re.compile(
    r'\bin\s+([A-G])(?:\s*-?\s*(flat|sharp)|([b#♭♯]))?\s+(major|minor|dur|moll)\b',
    re.IGNORECASE
)
QUOTED_PATTERN = re.compile(r'"([^"]+)"')
PAREN_PATTERN = re.compile(r'\(([^)]*)\)')
YEAR_PATTERN = re.compile(r'^(?:c\.\s*|comp\.\s*|composed\s+)?(1[0-9]{3}|20[0-9]{2})(?:\s*[-–/]\s*\d{2,4})?$', re.IGNORECASE)
SEPARATOR_PATTERN = re.compile(r':\s+|\s+[-–—]\s+')
# "Op. 9: No. 2" - a numbered piece inside an opus, not a movement
SUB_NUMBER_PATTERN = re.compile(r'\s*:\s*(No\.?\s*\d+[a-z]?)\b')
MOVEMENT_PATTERN = re.compile(r'^(?:(?P<roman>[IVXL]+)|(?P<arabic>\d{1,2}))\s*[.)]\s*(?P<title>.*)$')

# Parentheticals that annotate the recording rather than name the work
NON_NICKNAME_PREFIXES = (
    'live', 'remaster', 'arr', 'feat', 'version', 'excerpt', 'from', 'after',
    'transcr', 'orch', 'ed.', 'edit', 'mono', 'stereo', 'bonus', 'original',
)

ROMAN_VALUES = {'I': 1, 'V': 5, 'X': 10, 'L': 50}


@dataclass
class ParsedMetadata:
    composer_name: Optional[str]
    formal_name: str
    nickname: Optional[str] = None
    catalog_system: Optional[str] = None
    catalog_number: Optional[str] = None
    key: Optional[str] = None
    form: Optional[str] = None
    movement: Optional[int] = None
    movement_name: Optional[str] = None
    year_composed: Optional[int] = None

    def to_dict(self) -> dict:
        """JSON shape used by the admin UI"""
        return {
            'composerName': self.composer_name,
            'formalName': self.formal_name,
            'nickname': self.nickname,
            'catalogSystem': self.catalog_system,
            'catalogNumber': self.catalog_number,
            'key': self.key,
            'form': self.form,
            'movement': self.movement,
            'movementName': self.movement_name,
            'yearComposed': self.year_composed,
        }


# ============================================================================
# TEXT HELPERS
# ============================================================================

def normalize_quotes(text: str) -> str:
    """Straighten curly and low-9 double quotes so nicknames are found uniformly"""
    for variant in ('“', '”', '„', '«', '»'):
        text = text.replace(variant, '"')
    return text


def normalize_name(text: str) -> str:
    """Lowercase, accent-free, punctuation-free form of a person's name"""
    text = strip_accents(text or '').lower()
    text = re.sub(r'[^a-z0-9\s]', ' ', text)
    return re.sub(r'\s+', ' ', text).strip()


def roman_to_int(numeral: str) -> Optional[int]:
    total = 0
    previous = 0
    for char in reversed(numeral.upper()):
        value = ROMAN_VALUES.get(char)
        if value is None:
            return None
        if value < previous:
            total -= value
        else:
            total += value
            previous = value
    return total or None


def _clean(text: str) -> str:
    text = re.sub(r'\s+', ' ', text)
    return text.strip(' ,;:-–—')


# ============================================================================
# FIELD EXTRACTION
# ============================================================================

def find_catalog(text: str):
    """
    Find the earliest catalog reference in the text

    Returns:
        (system, number, match) or (None, None, None)
    """
    best = None
    for system, pattern in CATALOG_PATTERNS:
        match = pattern.search(text)
        if match and (best is None or match.start() < best[2].start()):
            best = (system, match.group(1), match)
    if best is None:
        return None, None, None

    system, number, match = best
    number = re.sub(r'\s*,?\s*No\.?\s*', ' No. ', number)
    number = re.sub(r'\s*:\s*', ':', number).strip()
    return system, number, match


def find_key(text: str) -> Optional[str]:
    """'in C-Sharp Minor' -> 'C-sharp minor'"""
    match = KEY_PATTERN.search(text)
    if not match:
        return None
    note, accidental_word, accidental_sign, mode = match.groups()
    accidental = ''
    if accidental_word:
        accidental = f"-{accidental_word.lower()}"
    elif accidental_sign in ('b', '♭'):
        accidental = '-flat'
    elif accidental_sign in ('#', '♯'):
        accidental = '-sharp'
    mode = {'dur': 'major', 'moll': 'minor'}.get(mode.lower(), mode.lower())
    return f"{note.upper()}{accidental} {mode}"


def find_form(text: str) -> Optional[str]:
    best = None
    for form, pattern in FORM_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        if best is None or match.start() < best[1] or (
                match.start() == best[1] and len(form) > len(best[0])):
            best = (form, match.start())
    return best[0] if best else None


def split_movement(text: str, catalog_match=None):
    """
    Split "<work>: <movement>" / "<work> - <movement>"

    Colon separators win over dash separators; a separator inside the
    catalog reference (e.g. "Hob. I: 94") is skipped.
    """
    candidates = []
    for match in SEPARATOR_PATTERN.finditer(text):
        if catalog_match and catalog_match.start() <= match.start() < catalog_match.end():
            continue
        if '"' in text[:match.start()] and text[:match.start()].count('"') % 2 == 1:
            continue
        candidates.append(match)

    colons = [m for m in candidates if m.group(0).lstrip().startswith(':')]
    chosen = colons[0] if colons else (candidates[0] if candidates else None)
    if chosen is None:
        return text, None
    return text[:chosen.start()], text[chosen.end():]


def parse_movement(movement_text: Optional[str]):
    """
    'IV. Presto' -> (4, 'Presto'); 'Aria' -> (None, 'Aria')
    """
    if not movement_text:
        return None, None
    movement_text = _clean(movement_text)
    match = MOVEMENT_PATTERN.match(movement_text)
    if not match:
        return None, movement_text or None
    if match.group('roman'):
        number = roman_to_int(match.group('roman'))
    else:
        number = int(match.group('arabic'))
    title = _clean(match.group('title')) or None
    return number, title


def extract_annotations(work_text: str):
    """
    Pull nickname and year out of quotes/parentheses

    Returns:
        (work text without them, nickname, year_composed)
    """
    nickname = None
    year = None

    quoted = QUOTED_PATTERN.search(work_text)
    if quoted:
        nickname = _clean(quoted.group(1)) or None
        work_text = work_text[:quoted.start()] + work_text[quoted.end():]

    def _paren(match):
        nonlocal nickname, year
        inner = match.group(1).strip()
        year_match = YEAR_PATTERN.match(inner)
        if year_match:
            if year is None:
                year = int(year_match.group(1))
            return ''
        if not inner or inner.lower().startswith(NON_NICKNAME_PREFIXES):
            return ''
        if nickname is None and not re.search(r'\d', inner):
            nickname = inner
            return ''
        return match.group(0)

    work_text = PAREN_PATTERN.sub(_paren, work_text)
    return _clean(work_text), nickname, year


def _is_form_word(token: str) -> bool:
    return token in FORM_WORDS or (token.endswith('s') and token[:-1] in FORM_WORDS)


def is_ensemble(name: str) -> bool:
    """True for credits such as 'Beaux Arts Trio' or 'Berliner Philharmoniker'"""
    return any(token in ENSEMBLE_WORDS for token in normalize_name(name).split())


def choose_composer(artist_names: Sequence[str], title: str,
                    known_composers: Optional[Iterable[str]] = None,
                    prefix: Optional[str] = None) -> Optional[str]:
    """
    Pick which credited artist is the composer

    Order of preference: the artist named in a "<Composer>: ..." title
    prefix, an artist fuzzily matching a known composer, an artist whose
    surname appears in the title, then the first credited artist. Group
    credits ("Emerson String Quartet") are only chosen when nobody else
    is credited.
    """
    names = [name for name in artist_names if name and name.strip()]
    if not names:
        return None

    if prefix:
        normalized_prefix = normalize_name(prefix)
        for name in names:
            normalized = normalize_name(name)
            if normalized == normalized_prefix or normalized.split()[-1:] == [normalized_prefix]:
                return name

    if known_composers:
        known = [normalize_name(k) for k in known_composers if k]
        best_name, best_score = None, 0
        for name in names:
            normalized = normalize_name(name)
            for candidate in known:
                score = fuzz.token_sort_ratio(normalized, candidate)
                if score > best_score:
                    best_name, best_score = name, score
        if best_score >= COMPOSER_MATCH_THRESHOLD:
            return best_name

    people = [name for name in names if not is_ensemble(name)]

    normalized_title = f" {normalize_name(title)} "
    for name in people:
        tokens = normalize_name(name).split()
        if not tokens or len(tokens[-1]) <= 2 or _is_form_word(tokens[-1]):
            continue
        if f" {tokens[-1]} " in normalized_title:
            return name

    return people[0] if people else names[0]


# ============================================================================
# PUBLIC API
# ============================================================================

def parse_track_metadata(track_name: str, artist_names: Sequence[str],
                         known_composers: Optional[Iterable[str]] = None) -> Optional[ParsedMetadata]:
    """
    Parse one Spotify track title

    Args:
        track_name: Spotify track title
        artist_names: Credited artist names, in Spotify's order
        known_composers: Optional names of catalogued composers

    Returns:
        ParsedMetadata, or None if the title names neither a catalog number
        nor a form
    """
    if not track_name or not isinstance(track_name, str):
        return None
    artist_names = [a for a in (artist_names or []) if isinstance(a, str)]

    text = _clean(normalize_quotes(track_name))

    # "Beethoven: Symphony No. 9 ..." - drop a leading composer credit
    prefix = None
    head, sep, rest = text.partition(': ')
    if sep and rest and head and len(head.split()) <= 4:
        normalized_head = normalize_name(head)
        for name in artist_names:
            normalized = normalize_name(name)
            if normalized_head and (normalized == normalized_head
                                    or normalized.split()[-1:] == [normalized_head]):
                prefix = head
                text = rest
                break

    catalog_system, catalog_number, catalog_match = find_catalog(text)
    if catalog_match:
        sub_number = SUB_NUMBER_PATTERN.match(text, catalog_match.end())
        if sub_number:
            text = f"{text[:catalog_match.end()]} {sub_number.group(1)}{text[sub_number.end():]}"
            catalog_system, catalog_number, catalog_match = find_catalog(text)
    work_text, movement_text = split_movement(text, catalog_match)
    if catalog_match and catalog_match.start() >= len(work_text):
        # Catalog reference only in the movement portion
        catalog_system, catalog_number = None, None

    form = find_form(work_text)
    if not catalog_number and not form:
        return None

    key = find_key(work_text)
    formal_name, nickname, year_composed = extract_annotations(work_text)
    movement, movement_name = parse_movement(movement_text)

    return ParsedMetadata(
        composer_name=choose_composer(artist_names, track_name, known_composers, prefix),
        formal_name=formal_name or _clean(work_text),
        nickname=nickname,
        catalog_system=catalog_system,
        catalog_number=catalog_number,
        key=key,
        form=form,
        movement=movement,
        movement_name=movement_name,
        year_composed=year_composed,
    )


def parse_batch_track_metadata(entries: List[dict],
                               known_composers: Optional[Iterable[str]] = None) -> List[Optional[ParsedMetadata]]:
    """
    Parse a batch of {trackName, artistNames} entries

    One output per input, in input order; unparseable entries yield None.
    """
    known = list(known_composers) if known_composers else None
    results = []
    for entry in entries:
        if not isinstance(entry, dict):
            results.append(None)
            continue
        results.append(parse_track_metadata(
            entry.get('trackName'),
            entry.get('artistNames') or [],
            known
        ))
    parsed_count = sum(1 for r in results if r is not None)
    logger.info(f"Parsed {parsed_count}/{len(entries)} track title(s)")
    return results
