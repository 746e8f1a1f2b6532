"""Application layer: interfaces (ports), DTOs and services.

Depends only on domain and protocol definitions. Infrastructure implements
the interfaces (Firestore repositories, identity client, photo storage).
"""
