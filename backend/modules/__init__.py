"""
Feature modules for the accounts backend.

- users: Auth0 user store with its Supabase mirror
- billing: product catalogue, provider API clients and checkout links
- pricing: regional prices and the per-IP price cache
- webhooks: Paddle and PayPro subscription events
- accounts: signed app and billing data, cancellation and team management

Each module keeps its interfaces, models, service, routes and exceptions
in separate files, and other modules depend on its interface only.
"""
