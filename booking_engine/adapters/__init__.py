from booking_engine.adapters.memory import InMemoryBookingStore

__all__ = ["InMemoryBookingStore"]
