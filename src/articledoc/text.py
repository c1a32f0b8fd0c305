"""
Unicode normalization and grapheme segmentation.

The PDF core fonts only cover Latin-1-ish text, so styled letters and smart
punctuation are folded to ASCII before measuring or drawing. Emoji cannot be
drawn as text at all; segmentation keeps each emoji sequence together so it
can be rasterized as one image.
"""

import unicodedata

import regex

ZWJ = "\u200d"
VS16 = "\ufe0f"
KEYCAP = "\u20e3"

# Applied after compatibility decomposition, which already folds the
# mathematical bold/italic/script alphabets and ellipsis to ASCII.
_PUNCTUATION = {
    "‐": "-",  # hyphen
    "‑": "-",  # non-breaking hyphen
    "‒": "-",  # figure dash
    "–": "-",  # en dash
    "—": "-",  # em dash
    "―": "-",  # horizontal bar
    "−": "-",  # minus sign
    "‘": "'",
    "’": "'",
    "‚": "'",
    "‛": "'",
    "′": "'",
    "“": '"',
    "”": '"',
    "„": '"',
    "‟": '"',
    "«": '"',
    "»": '"',
    "‹": "'",
    "›": "'",
    "…": "...",
    "\u200b": "",  # zero width space
    "\u2060": "",  # word joiner
    "\ufeff": "",
}

_TRANSLATE = {ord(k): v for k, v in _PUNCTUATION.items()}


def normalize(text: str) -> str:
    """Fold styled letters and smart punctuation to ASCII; strip combining marks.

    Code points with no ASCII equivalent (CJK, emoji, ...) pass through.
    ``normalize(normalize(x)) == normalize(x)`` holds for every string.
    """
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFKD", text)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.translate(_TRANSLATE)


GRAPHEME_RE = regex.compile(r"\X")
PICTOGRAPHIC_RE = regex.compile(r"\p{Extended_Pictographic}")


def _is_regional_indicator(cp: int) -> bool:
    return 0x1F1E6 <= cp <= 0x1F1FF


def segment_graphemes(text: str) -> list[str]:
    """Split text into extended grapheme clusters.

    ZWJ sequences, variation-selector and skin-tone suffixes, keycaps, flag
    pairs, combining sequences and Indic conjuncts stay in one cluster.
    """
    if not text:
        return []
    return GRAPHEME_RE.findall(text)


def is_emoji_grapheme(grapheme: str) -> bool:
    if not grapheme:
        return False
    if ZWJ in grapheme or VS16 in grapheme or KEYCAP in grapheme:
        return True
    if any(_is_regional_indicator(ord(ch)) for ch in grapheme):
        return True
    return PICTOGRAPHIC_RE.search(grapheme) is not None
