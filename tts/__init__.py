from tts.tts_service import TTSService

__all__ = ["TTSService"]
