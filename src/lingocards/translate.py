"Translation services used when creating flashcards."

import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

import google.generativeai as genai
import openai
import requests
from pydantic import BaseModel

logger = logging.getLogger(__name__)

DEFAULT_LANGPAIR = "id|en"
FAILED_TRANSLATION = "Translation failed"
MYMEMORY_URL = "https://api.mymemory.translated.net/get"
DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
DEFAULT_GEMINI_MODEL = "gemini-1.5-flash"


class TranslationError(Exception):
    """Raised by a translation backend when it cannot produce a translation."""


class Translation(BaseModel):
    """A translated piece of text.

    Attributes:
        text: The original input text.
        translation: The translated text, or ``FAILED_TRANSLATION``.
        succeeded: False when the translation fell back to the failure text.
    """

    text: str
    translation: str
    succeeded: bool = True


def split_langpair(langpair: str) -> Tuple[str, str]:
    """Splits a ``source|target`` language pair such as ``id|en``."""
    source, sep, target = langpair.partition("|")
    if not sep or not source.strip() or not target.strip():
        raise ValueError(f"Invalid language pair: {langpair!r}")
    return source.strip(), target.strip()


def _create_prompt(text: str, source_language: str, target_language: str) -> str:
    """Creates the prompt string for translating ``text`` with an LLM."""
    return f"""Translate the following text from language code '{source_language}' to language code '{target_language}'.
* Keep the meaning and register of the original
* Do not add explanations, transliterations or alternatives
Return only the translation.

Text: {text}"""


def _clean_response(raw: str) -> str:
    translation = raw.strip()
    if len(translation) > 1 and translation.startswith('"') and translation.endswith('"'):
        translation = translation[1:-1]
    return translation


class TranslationService(ABC):
    """Abstract base class for translation services.

    Subclasses implement :meth:`_translate`; :meth:`translate` wraps it so that
    backend failures become a ``Translation failed`` result instead of an
    exception reaching the user interface.
    """

    def __init__(self, langpair: str = DEFAULT_LANGPAIR):
        self.source_language, self.target_language = split_langpair(langpair)

    @property
    def langpair(self) -> str:
        return f"{self.source_language}|{self.target_language}"

    def translate(self, text: str) -> Translation:
        """Translates ``text``.

        Args:
            text: The foreign-language text.

        Returns:
            The translation. On any backend error the translation is
            ``FAILED_TRANSLATION`` and ``succeeded`` is False.

        Raises:
            ValueError: If ``text`` is empty.
        """
        if not text.strip():
            raise ValueError("Please enter text to translate")
        try:
            return Translation(text=text, translation=self._translate(text.strip()))
        except (TranslationError, requests.RequestException, openai.OpenAIError, ValueError) as e:
            logger.error("Translation error with %s: %s", type(self).__name__, e)
        except Exception:
            logger.exception("Unexpected translation error with %s", type(self).__name__)
        return Translation(text=text, translation=FAILED_TRANSLATION, succeeded=False)

    @abstractmethod
    def _translate(self, text: str) -> str:
        """Returns the translation of ``text`` or raises on failure."""


class MyMemoryTranslationService(TranslationService):
    """Free MyMemory translation API, no API key required."""

    def __init__(self, langpair: str = DEFAULT_LANGPAIR, timeout: float = 10.0):
        super().__init__(langpair)
        self.timeout = timeout

    def _translate(self, text: str) -> str:
        response = requests.get(
            MYMEMORY_URL,
            params={"q": text, "langpair": self.langpair},
            timeout=self.timeout,
        )
        data = response.json()
        if not response.ok or str(data.get("responseStatus")) != "200":
            raise TranslationError(data.get("responseDetails") or f"HTTP {response.status_code}")
        translated = (data.get("responseData") or {}).get("translatedText")
        if not translated:
            raise TranslationError("Empty translation in MyMemory response")
        return translated


class OpenAIService(TranslationService):
    """OpenAI chat completion translation service."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        langpair: str = DEFAULT_LANGPAIR,
        model: str = DEFAULT_OPENAI_MODEL,
    ):
        super().__init__(langpair)
        self.api_key = api_key
        self.model = model
        self.client: Optional[openai.OpenAI] = None

    def _translate(self, text: str) -> str:
        if not self.api_key:
            raise TranslationError("No OpenAI API key configured")
        if self.client is None:
            self.client = openai.OpenAI(api_key=self.api_key)

        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {
                    "role": "system",
                    "content": "You are a translation assistant for language learners.",
                },
                {
                    "role": "user",
                    "content": _create_prompt(text, self.source_language, self.target_language),
                },
            ],
            max_tokens=200,
            temperature=0,
        )
        content = response.choices[0].message.content
        if not content:
            raise TranslationError("Empty response from OpenAI")
        return _clean_response(content)


class GeminiService(TranslationService):
    """Google Gemini translation service."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        langpair: str = DEFAULT_LANGPAIR,
        model: str = DEFAULT_GEMINI_MODEL,
    ):
        super().__init__(langpair)
        self.api_key = api_key
        self.model = model
        self.client: Optional[genai.GenerativeModel] = None

    def _translate(self, text: str) -> str:
        if not self.api_key:
            raise TranslationError("No Gemini API key configured")
        if self.client is None:
            genai.configure(api_key=self.api_key)
            self.client = genai.GenerativeModel(self.model)

        response = self.client.generate_content(
            _create_prompt(text, self.source_language, self.target_language),
            generation_config={"temperature": 0},
        )
        return _clean_response(response.text)


class TranslationServiceFactory:
    """Factory for creating translation service instances."""

    @staticmethod
    def create_service(
        service_type: str,
        api_key: Optional[str] = None,
        langpair: str = DEFAULT_LANGPAIR,
    ) -> TranslationService:
        """Creates a translation service by name.

        Args:
            service_type: "mymemory", "openai" or "gemini".
            api_key: API key for the OpenAI or Gemini services.
            langpair: Source and target language codes, e.g. ``id|en``.

        Returns:
            An instance of a concrete TranslationService implementation.

        Raises:
            ValueError: If an unknown service type is provided.
        """
        service = service_type.lower()
        if service == "mymemory":
            return MyMemoryTranslationService(langpair=langpair)
        elif service == "openai":
            return OpenAIService(api_key=api_key, langpair=langpair)
        elif service == "gemini":
            return GeminiService(api_key=api_key, langpair=langpair)
        else:
            raise ValueError(f"Unknown translation service type: {service_type}")

    @staticmethod
    def get_available_services() -> List[str]:
        return ["mymemory", "openai", "gemini"]
