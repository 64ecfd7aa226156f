"""
Use Cases

Organized into domain folders:
- auth/: Registration and login
- otp/: One-time passcode challenges
- favorites/: Favorites set membership
- profile/: Profile read and avatar upload
"""
