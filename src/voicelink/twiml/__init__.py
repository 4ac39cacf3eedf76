"""
TwiML IVR: document builder, menu content and webhook router.
"""
