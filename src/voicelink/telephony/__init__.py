"""
Outbound calls, SMS and webhook signatures behind one provider interface.

Import adapters from their modules (``voicelink.telephony.factory`` for the
configured one); this package module stays import-free.
"""
