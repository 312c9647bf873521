"""Infrastructure adapters: Firestore, Identity Toolkit, blob storage, Redis."""
