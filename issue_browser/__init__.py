"""Streamlit browser and workbook I/O for the issue builder."""
