"""
Constituent segmentation and bulk-action engine
"""
