"""
commerce_i18n — Currency, Shipping and Tax Computation Engine.

Вычислительное ядро интернационализации маркетплейса:
- Каталоги валют, стран, зон доставки и налоговых ставок
- Обновление курсов из внешних провайдеров (circuit breaker + fallback)
- Конверсия сумм в minor units через базовую валюту
- Расчёт стоимости доставки по зонам и весовым брейкпоинтам
- Расчёт налогов (VAT/GST/sales/consumption, inclusive/exclusive)
- Разрешение предпочтений пользователя (currency/locale/timezone)
"""

__version__ = "0.4.0"
