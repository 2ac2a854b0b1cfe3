"""Domain layer: types, events and protocols shared by every rtlink component."""
