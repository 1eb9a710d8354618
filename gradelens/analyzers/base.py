"""
Text features shared by the rubric scoring rules
"""

import re
from dataclasses import dataclass, field

_SENTENCE_SPLIT = re.compile(r"[.!?]+")
_PARAGRAPH_SPLIT = re.compile(r"\n\s*\n")


@dataclass
class TextFeatures:
    """Lexical and structural counts for one submission"""
    text: str  # Trimmed, lowercased content that the scoring rules inspect
    word_count: int = 0
    sentence_count: int = 0
    paragraph_count: int = 0
    lines: list[str] = field(default_factory=list)

    @property
    def char_count(self) -> int:
        return len(self.text)


def extract_features(content: str) -> TextFeatures:
    """Calculate word, sentence and paragraph counts from raw content"""
    text = content.strip().lower()

    sentences = [s for s in _SENTENCE_SPLIT.split(content) if s.strip()]
    paragraphs = [p for p in _PARAGRAPH_SPLIT.split(content) if p.strip()]

    return TextFeatures(
        text=text,
        word_count=len(text.split()),
        sentence_count=len(sentences),
        paragraph_count=len(paragraphs),
        lines=text.split("\n"),
    )
