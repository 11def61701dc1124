"""Assistant Backend - Core application modules.

- Job orchestration against the remote transcription service
- SQLite models and record store (audio jobs, chat history)
- Blob staging area and atomic I/O utilities
"""

__version__ = "0.1.0"
