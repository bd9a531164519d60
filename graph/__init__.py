"""graph/ -- Directed follow graph between accounts, plus account deletion.

Layer rule: graph/ may import from core/, auth/ and posts/.
It does NOT import from api/.
"""
