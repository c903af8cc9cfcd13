"""Ingestion: live collection, gap reconciliation and kline sources."""
