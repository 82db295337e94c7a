"""Collection of Streamlit page modules for Miller Mitra.

Each module exposes ``render()`` and reads the signed-in profile and the
active season from ``st.session_state``.
"""
