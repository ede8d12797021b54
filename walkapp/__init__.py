"""Dog walking booking and execution service"""
