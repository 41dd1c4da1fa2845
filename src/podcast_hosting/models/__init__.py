from podcast_hosting.models.audio import AudioRecord

__all__ = [
    "AudioRecord",
]
