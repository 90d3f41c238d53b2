"""
Ingestion engine.

- service: persist one normalized batch (content, snapshot, influencers, discovery)
- pipeline: scrape + ingest per fandom/platform, per fandom, and fleet-wide
- discovery: candidate fandom tags from hashtags and mentions
- locks: per (fandom, platform) serialization
"""
