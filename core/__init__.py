"""Ядро Daily Challenges: модели, хранилище и генератор заданий"""
