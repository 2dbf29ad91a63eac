"""
Service Pricing Package

Pricing and customization engine for a construction service catalog.
Composes priced service options from catalog line items, layers
organization customizations over shared base options, and rolls options
up into multi-tier service packages.
"""

__version__ = "1.0.0"
