"""
auth — User authentication module.

Provides:
  • Signed, time-bound token creation & verification
  • Password hashing (bcrypt)
  • Sign-up / sign-in / guest-session orchestration and API routes
  • Background expiry of guest accounts
  • ``get_current_user_id`` FastAPI dependency
"""
