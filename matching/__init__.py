"""
Donor matching core: compatibility, ranking, notification and response recording
"""
