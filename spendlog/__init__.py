"""
spendlog -- single-user expense intake bot.

Turns free-form chat messages ("150 dinner swiggy") into validated expense
records, rejecting non-expense chatter before any paid inference call.

Sub-packages:
- intake: sanitizer, signal detector, confidence gate, extractor, validator, pipeline
- services: inference clients and the expense store
- bot: webhook gate, bot commands, outbound message transport
- api: FastAPI application factory
- lib: logging, exceptions, error codes, security helpers
"""

__version__ = "0.1.0"
