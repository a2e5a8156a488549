"""Inventory management service: tenants, sellers, hubs, SKUs, stock and webhook registrations."""