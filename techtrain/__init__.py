"""
TechTrain: backend de la boutique de formations (catalogue, inscriptions, paiements Stripe).
"""
__version__ = "1.0.0"
