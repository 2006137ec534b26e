"""ElevenLabs text-to-speech for the voice test panel."""
import logging

import requests

from ..errors import ConfigError, UpstreamError, ValidationError

logger = logging.getLogger(__name__)

TTS_URL = "https://api.elevenlabs.io/v1/text-to-speech/{voice_id}"


def synthesize(voice_id: str, text: str, api_key: str,
               stability: float = 0.5, similarity: float = 0.75,
               model: str = "eleven_multilingual_v2", timeout: float = 60.0) -> bytes:
    """Return MPEG audio for text spoken by voice_id."""
    if not voice_id or not text:
        raise ValidationError("Missing voiceId or text")
    if not api_key:
        raise ConfigError("ELEVENLABS_API_KEY is not configured")

    body = {
        "text": text,
        "model_id": model,
        "voice_settings": {
            "stability": stability,
            "similarity_boost": similarity,
            "style": 0.5,
            "use_speaker_boost": True,
        },
    }
    headers = {
        "Accept": "audio/mpeg",
        "Content-Type": "application/json",
        "xi-api-key": api_key,
    }
    try:
        r = requests.post(TTS_URL.format(voice_id=voice_id), json=body,
                          headers=headers, timeout=timeout)
    except requests.RequestException as e:
        raise UpstreamError(f"Generation failed: {e}")

    if not r.ok:
        try:
            data = r.json()
        except ValueError:
            data = None
        detail = data.get("detail") if isinstance(data, dict) else None
        message = detail.get("message") if isinstance(detail, dict) else None
        logger.error(f"ElevenLabs error {r.status_code}: {detail}")
        raise UpstreamError(message or "Generation failed", status=r.status_code)

    return r.content
