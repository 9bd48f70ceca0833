"""
Classifiers: find sensitive strings in a document's full text.

A classifier is any callable taking the full text and returning a list of
SensitiveSpan. The ones here wrap spaCy NER, the Gemini API, and a JSON
spans file. Tests and callers may pass any plain function instead.
"""

import json
import logging
from pathlib import Path
from typing import Any, Callable

from .errors import ClassificationError
from .models import SensitiveSpan


logger = logging.getLogger(__name__)

Classifier = Callable[[str], list[SensitiveSpan]]

# Category renames applied to classifier output for report grouping
CATEGORY_RENAMES = {
    "PERSON": "Name",
    "GPE": "Location",
    "LOC": "Location",
}

SPACY_ENTITY_TYPES = {
    "PERSON", "ORG", "GPE", "LOC", "DATE",
    "NORP", "FAC", "EVENT", "LAW", "MONEY",
}

GEMINI_PROMPT = """Extract every piece of sensitive information from the document text below.

Categories:
- PERSON: names of individuals, with titles where present (signatories, officers, anyone mentioned)
- ORG: companies, institutions, agencies, trade names
- ADDRESS: full street addresses including building, street, sector and landmark
- GPE: countries, cities, states
- LOC: other named places not part of an address
- Email, Phone: contact details
- Government and financial identifiers (tax IDs, national ID numbers, bank account numbers, bank codes)
- Case numbers, notice numbers, reference IDs

Rules:
- Extract values, not labels: for "Company Name: ABC Tech Pvt. Ltd." return "ABC Tech Pvt. Ltd.".
- Copy each value exactly as it appears in the text.
- Be exhaustive.

Respond with a JSON array of objects, each with string fields "type" and "text".

Document text:

---

{text}"""


def _strip_code_fence(raw: str) -> str:
    raw = raw.strip()
    if raw.startswith("```"):
        raw = raw.strip("`")
        if raw.lower().startswith("json"):
            raw = raw[4:]
        raw = raw.strip()
    return raw


def parse_classifier_output(raw: Any) -> list[SensitiveSpan]:
    """
    Normalize raw classifier output into SensitiveSpan objects.

    Args:
        raw: A list of SensitiveSpan objects or {"type", "text"} mappings,
            or a JSON string of such a list

    Returns:
        List of spans; empty when the output is not a list
    """
    if isinstance(raw, str):
        raw = _strip_code_fence(raw)
        if not raw:
            return []
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Classifier returned invalid JSON: {e}")
            return []

    if not isinstance(raw, (list, tuple)):
        logger.warning(f"Classifier returned non-array data: {type(raw).__name__}")
        return []

    spans = []
    for item in raw:
        if isinstance(item, SensitiveSpan):
            if isinstance(item.literal, str):
                spans.append(item)
            continue
        if not isinstance(item, dict):
            continue
        text = item.get("text")
        if not isinstance(text, str):
            continue
        category = str(item.get("type") or "Unknown")
        spans.append(SensitiveSpan(
            category=CATEGORY_RENAMES.get(category, category),
            literal=text,
        ))
    return spans


class SpacyClassifier:
    """Named-entity recognition with a spaCy pipeline."""

    def __init__(self, model: str = "en_core_web_lg") -> None:
        self.model_name = model
        self._nlp = None

    @property
    def nlp(self):
        if self._nlp is None:
            try:
                import spacy
                logger.info(f"Loading spaCy model '{self.model_name}'...")
                self._nlp = spacy.load(self.model_name, disable=["lemmatizer"])
            except (ImportError, OSError) as e:
                raise ClassificationError(
                    f"Could not load spaCy model '{self.model_name}': {e}"
                ) from e
        return self._nlp

    def __call__(self, text: str) -> list[SensitiveSpan]:
        if not text.strip():
            return []

        raw = []
        for ent in self.nlp(text).ents:
            if ent.label_ not in SPACY_ENTITY_TYPES:
                continue
            etext = ent.text.strip()
            if not etext or len(etext) > 500:
                continue
            raw.append({"type": ent.label_, "text": etext})

        logger.debug(f"spaCy found {len(raw)} entities")
        return parse_classifier_output(raw)


class GeminiClassifier:
    """
    Sensitive-information extraction with a Gemini model.

    The model is asked for a JSON array at temperature 0. Transport and API
    failures raise ClassificationError; a reply that is not an array is
    treated as "nothing found".
    """

    def __init__(self, api_key: str, model: str = "gemini-2.5-flash") -> None:
        if not api_key:
            raise ClassificationError("A Gemini API key is required")
        self.api_key = api_key
        self.model_name = model
        self._model = None

    @property
    def model(self):
        if self._model is None:
            try:
                import google.generativeai as genai
            except ImportError as e:
                raise ClassificationError(f"google-generativeai is not installed: {e}") from e
            genai.configure(api_key=self.api_key)
            self._model = genai.GenerativeModel(
                self.model_name,
                generation_config={
                    "response_mime_type": "application/json",
                    "temperature": 0,
                },
            )
        return self._model

    def __call__(self, text: str) -> list[SensitiveSpan]:
        if not text.strip():
            logger.warning("Gemini classifier called with empty text")
            return []

        try:
            response = self.model.generate_content(GEMINI_PROMPT.format(text=text))
            raw = response.text or ""
        except ClassificationError:
            raise
        except Exception as e:
            raise ClassificationError(f"Gemini request failed: {e}") from e

        return parse_classifier_output(raw)


class SpansFileClassifier:
    """Replays spans from a JSON file; the text argument is ignored."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def __call__(self, text: str) -> list[SensitiveSpan]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = f.read()
        except OSError as e:
            raise ClassificationError(f"Could not read spans file {self.path}: {e}") from e
        return parse_classifier_output(raw)
