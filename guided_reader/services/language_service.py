"""Gemini-backed language services.

Three calls, all blocking (run them through `ServiceRunner`):
  - get_vocabulary(text) -> [VocabularyItem]
  - get_segments(text)   -> [Segment]
  - get_audio(text)      -> GeneratedAudio(path, duration)

Transport and auth problems raise `ExternalServiceFailure`. A reply that
cannot be parsed is logged and treated as an empty result.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional

from dotenv import load_dotenv
from google import genai
from google.genai import types

from guided_reader.domain.segments import Segment, VocabularyItem, parse_segments, parse_vocabulary
from guided_reader.errors import ExternalServiceFailure, MalformedServiceResponse
from guided_reader.services import tts_pronouncer

logger = logging.getLogger(__name__)

MAX_PROMPT_CHARS = 4000
VOCABULARY_SIZE = 30

# Gemini TTS returns raw 16-bit mono PCM at 24 kHz.
PCM_SAMPLE_RATE = 24000
PCM_CHANNELS = 1
PCM_SAMPLE_WIDTH = 2

_LANGUAGE_NAMES = {
    "bg": "Bulgarian",
    "de": "German",
    "en": "English",
    "es": "Spanish",
    "fr": "French",
    "it": "Italian",
    "ko": "Korean",
    "nl": "Dutch",
    "pl": "Polish",
    "ro": "Romanian",
    "ru": "Russian",
}


def language_name(code: str) -> str:
    return _LANGUAGE_NAMES.get(code.split("-", 1)[0].lower(), code)


@dataclass(frozen=True)
class GeneratedAudio:
    """Playable audio for the whole text and its exact length in seconds."""

    path: Path
    duration: float


def _decode_json(raw: Optional[str], what: str) -> Any:
    if not raw:
        raise MalformedServiceResponse("empty {} reply".format(what))
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise MalformedServiceResponse("unparseable {} JSON: {}".format(what, e))


class GeminiLanguageService:
    """Vocabulary, segmentation and narration for one source/target language pair."""

    def __init__(
        self,
        *,
        source_language: str = "de-DE",
        target_language: str = "bg-BG",
        text_model: str = "gemini-2.5-flash",
        speech_model: str = "gemini-2.5-flash-preview-tts",
        voice_name: str = "Kore",
        client: Any = None,
        cache_dir: Optional[Path] = None,
    ) -> None:
        self.source_language = source_language
        self.target_language = target_language
        self.text_model = os.getenv("GEMINI_TEXT_MODEL", text_model)
        self.speech_model = speech_model
        self.voice_name = voice_name
        self._client = client
        self._cache_dir = cache_dir

    # ----------------------------
    # Client
    # ----------------------------

    def _get_client(self, service: str) -> Any:
        if self._client is not None:
            return self._client
        load_dotenv()
        api_key = os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
        if not api_key:
            raise ExternalServiceFailure(service, "GEMINI_API_KEY is not set (put it in .env)")
        self._client = genai.Client(api_key=api_key)
        return self._client

    def _generate(self, service: str, **kwargs: Any) -> Any:
        client = self._get_client(service)
        try:
            return client.models.generate_content(**kwargs)
        except Exception as e:
            raise ExternalServiceFailure(service, str(e)) from e

    # ----------------------------
    # Vocabulary
    # ----------------------------

    def _vocabulary_prompt(self, text: str) -> str:
        source = language_name(self.source_language)
        target = language_name(self.target_language)
        return (
            "Analyze the following {source} text. Extract {n} vocabulary words or short phrases.\n"
            "Focus on words suitable for an A1/A2 learner, including important nouns, verbs, "
            "and adjectives used in the story.\n"
            "Translate them into {target}.\n\n"
            'Text: "{text}"'
        ).format(source=source, target=target, n=VOCABULARY_SIZE, text=text[:MAX_PROMPT_CHARS])

    def get_vocabulary(self, text: str) -> List[VocabularyItem]:
        schema = types.Schema(
            type=types.Type.ARRAY,
            items=types.Schema(
                type=types.Type.OBJECT,
                properties={
                    "source": types.Schema(
                        type=types.Type.STRING,
                        description="The {} word or phrase from the text".format(language_name(self.source_language)),
                    ),
                    "translation": types.Schema(
                        type=types.Type.STRING,
                        description="The {} translation".format(language_name(self.target_language)),
                    ),
                },
                required=["source", "translation"],
            ),
        )
        response = self._generate(
            "vocabulary",
            model=self.text_model,
            contents=self._vocabulary_prompt(text),
            config=types.GenerateContentConfig(response_mime_type="application/json", response_schema=schema),
        )
        try:
            return parse_vocabulary(_decode_json(response.text, "vocabulary"))
        except MalformedServiceResponse as e:
            logger.error("Failed to parse vocabulary: %s", e)
            return []

    # ----------------------------
    # Segments
    # ----------------------------

    def _segments_prompt(self, text: str) -> str:
        source = language_name(self.source_language)
        target = language_name(self.target_language)
        return (
            "Break down the following {source} text into a flat JSON array of segments in their "
            "exact original order.\n"
            "Include every word and punctuation mark as a separate item.\n"
            "For each item, determine if it is a 'word' or not.\n"
            "If it is a word, provide the {target} translation in context. If it is punctuation, "
            "translation should be null.\n"
            "Do NOT include whitespace items (spaces/newlines) in the JSON array, but DO include "
            'punctuation like ., " ! ? » «.\n\n'
            'Text: "{text}"'
        ).format(source=source, target=target, text=text[:MAX_PROMPT_CHARS])

    def get_segments(self, text: str) -> List[Segment]:
        schema = types.Schema(
            type=types.Type.ARRAY,
            items=types.Schema(
                type=types.Type.OBJECT,
                properties={
                    "text": types.Schema(type=types.Type.STRING, description="The word or punctuation mark"),
                    "translation": types.Schema(
                        type=types.Type.STRING,
                        description="{} translation if it is a word, otherwise null".format(
                            language_name(self.target_language)
                        ),
                        nullable=True,
                    ),
                    "isWord": types.Schema(
                        type=types.Type.BOOLEAN,
                        description="True if it is a word, false if punctuation",
                    ),
                },
                required=["text", "isWord"],
            ),
        )
        response = self._generate(
            "segments",
            model=self.text_model,
            contents=self._segments_prompt(text),
            config=types.GenerateContentConfig(response_mime_type="application/json", response_schema=schema),
        )
        try:
            return parse_segments(_decode_json(response.text, "segments"))
        except MalformedServiceResponse as e:
            logger.error("Failed to parse segments: %s", e)
            return []

    # ----------------------------
    # Audio
    # ----------------------------

    def get_audio(self, text: str) -> GeneratedAudio:
        response = self._generate(
            "audio",
            model=self.speech_model,
            contents=text,
            config=types.GenerateContentConfig(
                response_modalities=["AUDIO"],
                speech_config=types.SpeechConfig(
                    voice_config=types.VoiceConfig(
                        prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=self.voice_name),
                    ),
                ),
            ),
        )
        pcm = _inline_audio(response)
        if not pcm:
            raise ExternalServiceFailure("audio", "no audio data returned")

        cache_dir = self._cache_dir or tts_pronouncer.get_cache_dir()
        name = tts_pronouncer.cached_filename(text, self.source_language, self.voice_name).replace("tts_", "narration_", 1)
        path = tts_pronouncer.write_pcm_wav(
            cache_dir / name,
            pcm,
            sample_rate=PCM_SAMPLE_RATE,
            channels=PCM_CHANNELS,
            sample_width=PCM_SAMPLE_WIDTH,
        )
        duration = tts_pronouncer.pcm_duration(
            len(pcm),
            sample_rate=PCM_SAMPLE_RATE,
            channels=PCM_CHANNELS,
            sample_width=PCM_SAMPLE_WIDTH,
        )
        logger.info("Generated %.3f s of narration at %s", duration, path)
        return GeneratedAudio(path=path, duration=duration)


def _inline_audio(response: Any) -> bytes:
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return b""
    content = getattr(candidates[0], "content", None)
    parts = getattr(content, "parts", None) or []
    if not parts:
        return b""
    inline = getattr(parts[0], "inline_data", None)
    data = getattr(inline, "data", None)
    return bytes(data) if data else b""


__all__ = ["GeminiLanguageService", "GeneratedAudio", "language_name"]
