"""
ticketfx: PEN/USD/ARS conversion service and receipt-scanning tool loop.
"""

__version__ = "0.1.0"
