"""
API модуль - HTTP-интерфейс и хранилища
"""
