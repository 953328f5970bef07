import streamlit as st
from supabase import create_client, Client

import settings


@st.cache_resource
def get_admin_client() -> Client:
    """Cliente com a service role; criado uma vez por processo e repassado às funções de dados."""
    return create_client(settings.supabase_url(), settings.supabase_key(admin=True))
