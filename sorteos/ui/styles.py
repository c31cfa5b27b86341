"""
UI styling (CSS injected via st.markdown).
"""

from __future__ import annotations

import streamlit as st

THEME_CSS = """
<style>
  :root {
    --bg-primary: #ffffff;
    --bg-secondary: #f8f9fa;
    --text-primary: #1a1a1a;
    --text-secondary: #6b7280;
    --border-color: #e5e7eb;
    --accent: #e11d48;
    --accent-light: #ffe4e6;
    --card-bg: #ffffff;
    --shadow-color: rgba(0, 0, 0, 0.1);
    --skeleton-start: #f0f0f0;
    --skeleton-mid: #e0e0e0;
    --skeleton-end: #f0f0f0;
    --skeleton-card-bg: #fafafa;
    --skeleton-card-border: #e0e0e0;
  }

  [data-testid="stSidebar"] {
    background-color: var(--bg-secondary);
    border-right: 1px solid var(--border-color);
  }
</style>
"""

BASE_CSS = """
<style>
  .block-container { padding-top: 1.5rem; padding-bottom: 2rem; }
  [data-testid="stMetricValue"] { font-size: 1.3rem; }
  .status-badge {
    display: inline-block;
    padding: 2px 10px;
    border-radius: 12px;
    font-size: 0.75rem;
    font-weight: 600;
    color: white;
  }
  .status-gray { background: #6b7280; }
  .status-green { background: #16a34a; }
  .status-blue { background: #2563eb; }
  .status-orange { background: #ea580c; }
  .status-red { background: #dc2626; }
  .status-purple { background: #7c3aed; }
  .trending-badge {
    background: linear-gradient(135deg, #f97316 0%, #e11d48 100%);
    color: white;
    padding: 2px 8px;
    border-radius: 12px;
    font-size: 0.75rem;
    font-weight: bold;
  }
  /* Skeleton loading styles */
  .skeleton {
    background: linear-gradient(90deg, var(--skeleton-start) 25%, var(--skeleton-mid) 50%, var(--skeleton-end) 75%);
    background-size: 200% 100%;
    animation: skeleton-loading 1.5s infinite;
    border-radius: 4px;
  }
  @keyframes skeleton-loading {
    0% { background-position: 200% 0; }
    100% { background-position: -200% 0; }
  }
  .skeleton-title { height: 24px; width: 60%; margin-bottom: 8px; }
  .skeleton-text { height: 16px; width: 100%; margin-bottom: 6px; }
  .skeleton-row { height: 36px; width: 100%; margin-bottom: 6px; }
  .skeleton-card {
    padding: 1rem;
    border: 1px solid var(--skeleton-card-border);
    border-radius: 8px;
    background: var(--skeleton-card-bg);
    margin-bottom: 0.75rem;
  }
  /* Alert bar */
  .alert-bar {
    border-radius: 10px;
    padding: 12px 16px;
    margin-bottom: 12px;
    color: white;
  }
  .alert-live { background: linear-gradient(135deg, #dc2626 0%, #e11d48 100%); }
  .alert-upcoming { background: linear-gradient(135deg, #2563eb 0%, #7c3aed 100%); }
  .alert-started { background: linear-gradient(135deg, #ea580c 0%, #f59e0b 100%); }
  .alert-bar a { color: white; font-weight: 600; text-decoration: underline; }
  .empty-state {
    border: 2px dashed var(--border-color);
    border-radius: 12px;
    padding: 2rem;
    text-align: center;
    color: var(--text-secondary);
  }
  .empty-state .icon { font-size: 2rem; }
</style>
"""

RESPONSIVE_CSS = """
<style>
  @media (max-width: 768px) {
    .block-container { padding-left: 0.75rem; padding-right: 0.75rem; }
    .alert-bar { font-size: 0.9rem; }
  }
</style>
"""


def apply_styles() -> None:
    st.markdown(THEME_CSS, unsafe_allow_html=True)
    st.markdown(BASE_CSS, unsafe_allow_html=True)
    st.markdown(RESPONSIVE_CSS, unsafe_allow_html=True)
