# Supabase table: profiles
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py
# Authentication is handled by Supabase Auth (auth.users table)

"""
Expected Supabase table structure:

profiles:
- id: uuid (primary key, default: gen_random_uuid())
- user_id: uuid (not null, unique, references auth.users.id)
- role: text (not null) - 'buyer' | 'seller', fixed once inserted
- is_verified: boolean (not null, default: false) - true for buyers at creation;
  flipped for sellers by an admin after reviewing business details
- full_name: text (nullable)
- business_name: text (nullable) - present once a seller has submitted verification
- phone_number: text (nullable) - E.164
- address: text (nullable)
- created_at: timestamp (default: now())
- updated_at: timestamp (default: now())

A user with no row has not selected a role yet; the access policy sends them to
/auth/role. The unique constraint on user_id (Postgres code 23505 on conflict)
is what enforces one profile per user.
"""
