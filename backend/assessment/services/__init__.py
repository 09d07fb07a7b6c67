"""
Service layer: transactional operations over a SQLAlchemy session.
"""
