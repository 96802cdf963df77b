"""Services: event relay, collection lifecycle and the collection service."""
