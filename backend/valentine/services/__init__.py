"""
Valentine Backend: Services Layer
===================================

Service Inventory:
    - ImageNormalizer: resize to at most 800px wide, re-encode JPEG q80
    - SurpriseStore: save / find_by_id over the surprises table
    - SurpriseService: create, get and check orchestration
"""
