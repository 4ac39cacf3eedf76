"""
Voice/SMS API and the guards shared with campaigns.
"""
