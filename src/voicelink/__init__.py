"""
VoiceLink backend: TwiML IVR responder, voice/SMS API and campaigns.
"""

__version__ = "0.1.0"
