import os

# Supabase project settings

SUPABASE_URL = os.getenv('SUPABASE_URL', '')

# Service-role key bypasses row-level security; only the ingestion endpoint uses it
SUPABASE_SERVICE_ROLE_KEY = os.getenv('SUPABASE_SERVICE_ROLE_KEY', '')

# Anon key used with the caller's access token so row-level security applies
SUPABASE_ANON_KEY = os.getenv('SUPABASE_ANON_KEY', '')

# Secret the backend signs user access tokens with (HS256)
SUPABASE_JWT_SECRET = os.getenv('SUPABASE_JWT_SECRET', 'dev-secret-change-in-prod')
SUPABASE_JWT_AUDIENCE = os.getenv('SUPABASE_JWT_AUDIENCE', 'authenticated')

# HTTP settings

# Comma separated list of allowed origins, "*" allows any
CORS_ALLOW_ORIGINS = [o.strip() for o in os.getenv('CORS_ALLOW_ORIGINS', '*').split(',') if o.strip()]

# Seconds to wait on the Riot status endpoint
RIOT_API_TIMEOUT = float(os.getenv('RIOT_API_TIMEOUT', 10))

LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()
