"""
Google Trends collection.

- client: batched comparative queries with anchor rescaling
- keywords: fandom name -> search keyword mapping
- service: collect_trends / collect_regional_trends under a persisted job record
"""
