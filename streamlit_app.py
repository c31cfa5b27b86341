"""
Streamlit admin UI.

Usage:
    pip install -e .
    streamlit run streamlit_app.py
"""

from __future__ import annotations

from sorteos.ui.app import main

if __name__ == "__main__":
    main()
