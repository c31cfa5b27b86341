"""
Streamlit admin and participant UI.

Pages share the service layer with the JSON API (sorteos.services).
"""

from __future__ import annotations
