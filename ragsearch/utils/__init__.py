"""Text normalisation, retry and hit conversion helpers."""