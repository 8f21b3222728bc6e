"""Terminal front-end for MeetScribe."""
