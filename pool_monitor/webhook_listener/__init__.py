"""
FastAPI service receiving Helius webhooks and serving pool listings.
"""
