# response_parser.py
"""
Extraction of the key findings from the vision model's free-text answer.

The model is asked to start its answer with three sentinel lines::

    CONFIDENCE_LEVEL: 82%
    RISK_LEVEL: HIGH
    ANALYSIS: ...

The answer is untrusted text, so each field is looked up independently and
falls back to a fixed default:

* confidence -- first ``CONFIDENCE_LEVEL: <digits>%``, as an int; 0 if absent.
  The value is not clamped to 0..100.
* risk -- first ``RISK_LEVEL: LOW|MEDIUM|HIGH`` (any case), upper-cased;
  ``UNKNOWN`` if absent.
* analysis -- everything after the first ``ANALYSIS:``, stripped; the whole
  response verbatim if the sentinel is missing.
"""
import re
from dataclasses import dataclass

UNKNOWN_RISK = "UNKNOWN"

CONFIDENCE_RE = re.compile(r"CONFIDENCE_LEVEL:\s*(\d+)%", re.IGNORECASE)
RISK_RE = re.compile(r"RISK_LEVEL:\s*(LOW|MEDIUM|HIGH)", re.IGNORECASE)
ANALYSIS_RE = re.compile(r"ANALYSIS:\s*(.*)", re.IGNORECASE | re.DOTALL)


@dataclass(frozen=True)
class ParsedAnalysis:
    confidence: int
    risk: str
    analysis: str
    raw: str


def parse_confidence(text: str) -> int:
    match = CONFIDENCE_RE.search(text)
    return int(match.group(1)) if match else 0


def parse_risk(text: str) -> str:
    match = RISK_RE.search(text)
    return match.group(1).upper() if match else UNKNOWN_RISK


def parse_analysis_body(text: str) -> str:
    match = ANALYSIS_RE.search(text)
    return match.group(1).strip() if match else text


def parse_analysis(text: str) -> ParsedAnalysis:
    return ParsedAnalysis(
        confidence=parse_confidence(text),
        risk=parse_risk(text),
        analysis=parse_analysis_body(text),
        raw=text,
    )
