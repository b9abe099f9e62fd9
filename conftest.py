"""
Pytest configuration for Django tests.
"""
import os

import django

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'embroidery_orders.settings')

django.setup()
