"""
Admin API for the web panel.

This module provides the HTTP API server the administration panel uses
to manage templates, browse history and send announcements.
"""
