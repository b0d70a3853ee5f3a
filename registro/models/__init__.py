from .emocion import DailyEmotion

__all__ = [
    "DailyEmotion",
]
