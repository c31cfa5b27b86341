"""
Page loaders and mutation handlers.

Every function takes the table store first so the API, the Streamlit UI and
the tests share one implementation over Postgres or the in-memory store.
"""
