"""
Поиск по сайтам: обход, индексация лемм и полнотекстовый поиск
"""
__version__ = "1.0.0"
