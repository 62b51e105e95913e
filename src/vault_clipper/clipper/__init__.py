"""Clip task orchestration engine.

One user-triggered clip becomes a detached asyncio pipeline::

    extracting -> [llm_content] -> [llm_tags] -> saving -> done

Progress lives in a capped, persisted task history that is the single
source of truth for observers. All history writes go through one
serialized writer per store, so concurrently running clips never lose
each other's transitions.
"""
