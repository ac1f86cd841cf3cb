"""auth/ -- Authentication and authorization package for Newsdesk.

Layer rule: auth/ imports from core/ and blobs/ plus third-party libraries.
It does NOT import from api/ or news/; the content store reaches the
account service by injection.
api/ imports from auth/, not the other way around.
"""
