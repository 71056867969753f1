"""
Core Package

Contains the exchange-agnostic core logic including:
- ExchangeAdapter: Abstract base class for exchange connectors, including the
  connection/reconnection state machine
- ExchangeManager: Registry of adapters and sequential exchange switching
- Aggregator: Read-only view of the active adapter's ticker records
- Schemas: Pydantic models for normalized ticker data

This layer ensures all exchanges follow the same interface, making the system modular and scalable.
"""
