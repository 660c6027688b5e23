# Supabase Auth
# LastBite uses Supabase's built-in authentication system
# No custom tables are required - Supabase Auth handles:
# - Email/password registration and confirmation emails
# - Phone sign in with SMS one-time codes
# - Google OAuth (PKCE flow, landing on /auth/callback)
# - JWT access/refresh token issuance and validation

"""
Supabase Auth calls used by AuthService:
- auth.sign_up() - register; user_metadata carries {role, is_verified}
- auth.sign_in_with_password() - email login
- auth.sign_in_with_otp() / auth.verify_otp() - phone login
- auth.sign_in_with_oauth() / auth.exchange_code_for_session() - Google login
- auth.get_user(jwt) - session validation for every protected navigation
- auth.refresh_session() - swap a refresh token for a new session
- auth.admin.sign_out(jwt) - revoke a session

Tokens are stored in HttpOnly cookies (see lastbite.access.cookies), never in
Supabase client storage, so one shared client can serve every user.
"""
