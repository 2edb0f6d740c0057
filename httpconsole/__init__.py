"""
httpconsole: speak HTTP like a local
=====================================

An interactive console for exploring an HTTP server over a single
persistent connection:

  • Navigate     – /users, .., /1/
  • Set headers  – Accept: application/json
  • Send         – GET, POST, PUT, DELETE, ... (any upper-case verb)

Cross-platform: Linux · macOS · Windows
"""

__version__ = "1.0.0"
__app_name__ = "httpconsole"
