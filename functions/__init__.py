"""QuoteDesk functions package.

Conversational intake and pricing core for the landscaping quote widget.
"""
