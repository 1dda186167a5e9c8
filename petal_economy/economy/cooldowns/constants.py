from datetime import timedelta

SPIN_COOLDOWN = timedelta(days=14)
SOCIAL_ACTIVITY_COOLDOWN = timedelta(days=30)
REFERRALS_PER_YEAR_CAP = 20
