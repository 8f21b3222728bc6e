"""MeetScribe - live meeting transcription with streamed analysis and follow-up chat."""

__version__ = "0.1.0"
