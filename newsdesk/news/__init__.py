"""
Community news: submission intake, moderation, publication and analytics.
"""
