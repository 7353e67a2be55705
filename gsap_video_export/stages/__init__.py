"""RU: Стадии пайплайна экспорта: preflight, захват кадров и кодирование.

Стадии выполняются строго последовательно; каждая следующая стартует только
после полного завершения предыдущей.

EN: Export pipeline stages: preflight, frame capture and encoding.

Stages run strictly in order; each one starts only after the previous one has
fully completed.
"""
