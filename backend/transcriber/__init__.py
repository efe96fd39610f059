"""Voice Channel Transcriber - live per-speaker transcription for Discord voice channels."""
