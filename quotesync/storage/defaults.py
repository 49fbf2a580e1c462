"""Seed records for a store that has never been persisted."""

from typing import List

from quotesync.types import Record, new_local_id, utc_now

DEFAULT_QUOTES = [
    ("The only way to do great work is to love what you do.", "Steve Jobs"),
    ("Innovation distinguishes between a leader and a follower.", "Steve Jobs"),
    ("Stay hungry, stay foolish.", "Steve Jobs"),
    ("Genius is one percent inspiration and ninety-nine percent perspiration.", "Thomas Edison"),
    (
        "The future belongs to those who believe in the beauty of their dreams.",
        "Eleanor Roosevelt",
    ),
    (
        "Success is not final, failure is not fatal: it is the courage to continue that counts.",
        "Winston Churchill",
    ),
    ("The best way to predict the future is to create it.", "Peter Drucker"),
    ("Believe you can and you're halfway there.", "Theodore Roosevelt"),
    ("It always seems impossible until it's done.", "Nelson Mandela"),
    ("The mind is everything. What you think you become.", "Buddha"),
    ("Life is what happens when you're busy making other plans.", "John Lennon"),
    (
        "The greatest glory in living lies not in never falling, but in rising every time we fall.",
        "Nelson Mandela",
    ),
]


def default_records() -> List[Record]:
    """Fresh seed records. Unsynced, so the first cycle offers them to the remote."""
    now = utc_now()
    return [
        Record(id=new_local_id(), text=text, category=category, updated_at=now, synced=False)
        for text, category in DEFAULT_QUOTES
    ]
