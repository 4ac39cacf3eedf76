"""
Bulk SMS / voice campaigns.
"""
