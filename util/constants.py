class InternalURIs:
    HEALTH = "/health"
    SEARCH = "/search"
    SEARCH_PILLS = SEARCH + "/pills"
    SEARCH_PILLS_WEIGHTED = SEARCH_PILLS + "/weighted"
    RESUME_DETAILS = SEARCH + "/resume/details"
    INGEST = "/ingest"


class ExternalURIs:
    SUPABASE_REST = "/rest/v1"
    SUPABASE_RPC = SUPABASE_REST + "/rpc"
    SUPABASE_STORAGE = "/storage/v1/object"
    SUPABASE_PUBLIC_STORAGE = SUPABASE_STORAGE + "/public"
    OPENAI_EMBEDDINGS = "https://api.openai.com/v1/embeddings"
