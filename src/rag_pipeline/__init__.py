"""Video transcript RAG pipeline.

This package fetches YouTube transcripts, splits them into overlapping
segments, embeds them, and maintains one persistent FAISS index over every
ingested video.
"""
