"""
Agents package.

- tool_loop: forwards chat requests to the model and runs the tools it asks for
- receipt_scan: reads a receipt image and converts its total
"""
