"""
Fandom Pulse: social-media acquisition and normalization for tracked fandoms.

Pipeline stages:
1. Providers: scrape one platform through the primary provider, failing over to the secondary
2. Normalization: map provider payloads into content, metric and influencer records
3. Ingestion: dedupe content, upsert daily snapshots with growth rate, upsert influencers
4. Discovery: report frequent untracked hashtags/mentions
5. Trends: comparative Google Trends collection with anchor rescaling
"""
