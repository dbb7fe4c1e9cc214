"""
WCAG 2.2 catalogue for axe-core tags.

axe tags violations with strings such as ``wcag111`` (success criterion
1.1.1) or ``wcag21aa`` (WCAG 2.1 Level AA conformance). This module turns
those tags into structured criteria for reporting.
"""
import re
from typing import Dict, Iterable, List, Optional, Tuple, Union

from pydantic import BaseModel

UNDERSTANDING_BASE_URL = "https://www.w3.org/WAI/WCAG22/Understanding"


class WCAGCriterion(BaseModel):
    number: str
    name: str
    level: str
    url: str


class WCAGConformance(BaseModel):
    version: str
    level: str
    label: str


# code -> (number, name, level, understanding slug)
_CRITERIA: Dict[str, Tuple[str, str, str, str]] = {
    "111": ("1.1.1", "Non-text Content", "A", "non-text-content"),
    "121": ("1.2.1", "Audio-only and Video-only (Prerecorded)", "A", "audio-only-and-video-only-prerecorded"),
    "122": ("1.2.2", "Captions (Prerecorded)", "A", "captions-prerecorded"),
    "123": ("1.2.3", "Audio Description or Media Alternative (Prerecorded)", "A", "audio-description-or-media-alternative-prerecorded"),
    "124": ("1.2.4", "Captions (Live)", "AA", "captions-live"),
    "125": ("1.2.5", "Audio Description (Prerecorded)", "AA", "audio-description-prerecorded"),
    "126": ("1.2.6", "Sign Language (Prerecorded)", "AAA", "sign-language-prerecorded"),
    "127": ("1.2.7", "Extended Audio Description (Prerecorded)", "AAA", "extended-audio-description-prerecorded"),
    "128": ("1.2.8", "Media Alternative (Prerecorded)", "AAA", "media-alternative-prerecorded"),
    "129": ("1.2.9", "Audio-only (Live)", "AAA", "audio-only-live"),
    "131": ("1.3.1", "Info and Relationships", "A", "info-and-relationships"),
    "132": ("1.3.2", "Meaningful Sequence", "A", "meaningful-sequence"),
    "133": ("1.3.3", "Sensory Characteristics", "A", "sensory-characteristics"),
    "134": ("1.3.4", "Orientation", "AA", "orientation"),
    "135": ("1.3.5", "Identify Input Purpose", "AA", "identify-input-purpose"),
    "136": ("1.3.6", "Identify Purpose", "AAA", "identify-purpose"),
    "141": ("1.4.1", "Use of Color", "A", "use-of-color"),
    "142": ("1.4.2", "Audio Control", "A", "audio-control"),
    "143": ("1.4.3", "Contrast (Minimum)", "AA", "contrast-minimum"),
    "144": ("1.4.4", "Resize Text", "AA", "resize-text"),
    "145": ("1.4.5", "Images of Text", "AA", "images-of-text"),
    "146": ("1.4.6", "Contrast (Enhanced)", "AAA", "contrast-enhanced"),
    "147": ("1.4.7", "Low or No Background Audio", "AAA", "low-or-no-background-audio"),
    "148": ("1.4.8", "Visual Presentation", "AAA", "visual-presentation"),
    "149": ("1.4.9", "Images of Text (No Exception)", "AAA", "images-of-text-no-exception"),
    "1410": ("1.4.10", "Reflow", "AA", "reflow"),
    "1411": ("1.4.11", "Non-text Contrast", "AA", "non-text-contrast"),
    "1412": ("1.4.12", "Text Spacing", "AA", "text-spacing"),
    "1413": ("1.4.13", "Content on Hover or Focus", "AA", "content-on-hover-or-focus"),
    "211": ("2.1.1", "Keyboard", "A", "keyboard"),
    "212": ("2.1.2", "No Keyboard Trap", "A", "no-keyboard-trap"),
    "213": ("2.1.3", "Keyboard (No Exception)", "AAA", "keyboard-no-exception"),
    "214": ("2.1.4", "Character Key Shortcuts", "A", "character-key-shortcuts"),
    "221": ("2.2.1", "Timing Adjustable", "A", "timing-adjustable"),
    "222": ("2.2.2", "Pause, Stop, Hide", "A", "pause-stop-hide"),
    "223": ("2.2.3", "No Timing", "AAA", "no-timing"),
    "224": ("2.2.4", "Interruptions", "AAA", "interruptions"),
    "225": ("2.2.5", "Re-authenticating", "AAA", "re-authenticating"),
    "226": ("2.2.6", "Timeouts", "AAA", "timeouts"),
    "231": ("2.3.1", "Three Flashes or Below Threshold", "A", "three-flashes-or-below-threshold"),
    "232": ("2.3.2", "Three Flashes", "AAA", "three-flashes"),
    "233": ("2.3.3", "Animation from Interactions", "AAA", "animation-from-interactions"),
    "241": ("2.4.1", "Bypass Blocks", "A", "bypass-blocks"),
    "242": ("2.4.2", "Page Titled", "A", "page-titled"),
    "243": ("2.4.3", "Focus Order", "A", "focus-order"),
    "244": ("2.4.4", "Link Purpose (In Context)", "A", "link-purpose-in-context"),
    "245": ("2.4.5", "Multiple Ways", "AA", "multiple-ways"),
    "246": ("2.4.6", "Headings and Labels", "AA", "headings-and-labels"),
    "247": ("2.4.7", "Focus Visible", "AA", "focus-visible"),
    "248": ("2.4.8", "Location", "AAA", "location"),
    "249": ("2.4.9", "Link Purpose (Link Only)", "AAA", "link-purpose-link-only"),
    "2410": ("2.4.10", "Section Headings", "AAA", "section-headings"),
    "2411": ("2.4.11", "Focus Not Obscured (Minimum)", "AA", "focus-not-obscured-minimum"),
    "2412": ("2.4.12", "Focus Not Obscured (Enhanced)", "AAA", "focus-not-obscured-enhanced"),
    "2413": ("2.4.13", "Focus Appearance", "AAA", "focus-appearance"),
    "251": ("2.5.1", "Pointer Gestures", "A", "pointer-gestures"),
    "252": ("2.5.2", "Pointer Cancellation", "A", "pointer-cancellation"),
    "253": ("2.5.3", "Label in Name", "A", "label-in-name"),
    "254": ("2.5.4", "Motion Actuation", "A", "motion-actuation"),
    "255": ("2.5.5", "Target Size (Enhanced)", "AAA", "target-size-enhanced"),
    "256": ("2.5.6", "Concurrent Input Mechanisms", "AAA", "concurrent-input-mechanisms"),
    "257": ("2.5.7", "Dragging Movements", "AA", "dragging-movements"),
    "258": ("2.5.8", "Target Size (Minimum)", "AA", "target-size-minimum"),
    "311": ("3.1.1", "Language of Page", "A", "language-of-page"),
    "312": ("3.1.2", "Language of Parts", "AA", "language-of-parts"),
    "313": ("3.1.3", "Unusual Words", "AAA", "unusual-words"),
    "314": ("3.1.4", "Abbreviations", "AAA", "abbreviations"),
    "315": ("3.1.5", "Reading Level", "AAA", "reading-level"),
    "316": ("3.1.6", "Pronunciation", "AAA", "pronunciation"),
    "321": ("3.2.1", "On Focus", "A", "on-focus"),
    "322": ("3.2.2", "On Input", "A", "on-input"),
    "323": ("3.2.3", "Consistent Navigation", "AA", "consistent-navigation"),
    "324": ("3.2.4", "Consistent Identification", "AA", "consistent-identification"),
    "325": ("3.2.5", "Change on Request", "AAA", "change-on-request"),
    "326": ("3.2.6", "Consistent Help", "A", "consistent-help"),
    "331": ("3.3.1", "Error Identification", "A", "error-identification"),
    "332": ("3.3.2", "Labels or Instructions", "A", "labels-or-instructions"),
    "333": ("3.3.3", "Error Suggestion", "AA", "error-suggestion"),
    "334": ("3.3.4", "Error Prevention (Legal, Financial, Data)", "AA", "error-prevention-legal-financial-data"),
    "335": ("3.3.5", "Help", "AAA", "help"),
    "336": ("3.3.6", "Error Prevention (All)", "AAA", "error-prevention-all"),
    "337": ("3.3.7", "Redundant Entry", "A", "redundant-entry"),
    "338": ("3.3.8", "Accessible Authentication (Minimum)", "AA", "accessible-authentication-minimum"),
    "339": ("3.3.9", "Accessible Authentication (Enhanced)", "AAA", "accessible-authentication-enhanced"),
    "412": ("4.1.2", "Name, Role, Value", "A", "name-role-value"),
    "413": ("4.1.3", "Status Messages", "AA", "status-messages"),
}

WCAG_CRITERIA: Dict[str, WCAGCriterion] = {
    code: WCAGCriterion(
        number=number,
        name=name,
        level=level,
        url=f"{UNDERSTANDING_BASE_URL}/{slug}.html",
    )
    for code, (number, name, level, slug) in _CRITERIA.items()
}

_VERSIONS = {"2": "2.0", "21": "2.1", "22": "2.2"}

WCAG_CONFORMANCE: Dict[str, WCAGConformance] = {
    f"{prefix}{level.lower()}": WCAGConformance(
        version=version, level=level, label=f"WCAG {version} Level {level}"
    )
    for prefix, version in _VERSIONS.items()
    for level in ("A", "AA", "AAA")
}

_DIGITS = re.compile(r"^\d+$")


def parse_wcag_tag(tag: str) -> Optional[Union[WCAGCriterion, WCAGConformance]]:
    """Parse one axe tag; returns None for non-WCAG or unknown tags."""
    if not tag.startswith("wcag"):
        return None

    code = tag[4:]
    if _DIGITS.match(code):
        return WCAG_CRITERIA.get(code)
    return WCAG_CONFORMANCE.get(code)


def format_wcag_tags(tags: Iterable[str]) -> Tuple[List[WCAGCriterion], List[WCAGConformance]]:
    """Split a violation's tags into success criteria and conformance levels."""
    criteria: List[WCAGCriterion] = []
    conformance: List[WCAGConformance] = []

    for tag in tags:
        parsed = parse_wcag_tag(tag)
        if isinstance(parsed, WCAGCriterion):
            criteria.append(parsed)
        elif isinstance(parsed, WCAGConformance):
            conformance.append(parsed)

    return criteria, conformance
