"""AI models package"""
