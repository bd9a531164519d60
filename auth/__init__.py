"""auth/ -- Identity and session package for the social graph service.

Layer rule: auth/ imports only stdlib, third-party libraries and core/.
It does NOT import from api/, graph/, or posts/.
api/ and graph/ import from auth/, not the other way around.
"""
