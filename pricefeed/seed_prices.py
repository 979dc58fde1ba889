"""Baseline quotes and volatility parameters for synthetic fallback data."""

# Last-known-good quotes for well-known symbols: (price, change, change_percent, volume)
BASELINE_QUOTES: dict[str, tuple[float, float, float, int]] = {
    # ASX ETFs and blue chips
    "VAS.AX": (89.45, 1.23, 1.39, 125_000),
    "VGS.AX": (102.67, -0.45, -0.44, 89_000),
    "VAF.AX": (51.23, 0.12, 0.23, 45_000),
    "VGE.AX": (67.89, 0.78, 1.16, 67_000),
    "VDHG.AX": (58.40, 0.21, 0.36, 52_000),
    "CBA.AX": (104.50, -1.20, -1.13, 890_000),
    "BHP.AX": (46.78, 0.89, 1.94, 1_200_000),
    "CSL.AX": (285.10, 2.15, 0.76, 410_000),
    "WBC.AX": (24.35, -0.12, -0.49, 2_100_000),
    "ANZ.AX": (27.80, 0.18, 0.65, 1_900_000),
    # US large caps
    "AAPL": (190.00, 0.85, 0.45, 52_000_000),
    "GOOGL": (175.00, -0.60, -0.34, 21_000_000),
    "MSFT": (420.00, 1.90, 0.45, 18_000_000),
    "AMZN": (185.00, 1.10, 0.60, 35_000_000),
    "TSLA": (250.00, -4.20, -1.65, 95_000_000),
    "NVDA": (800.00, 12.40, 1.57, 41_000_000),
    "META": (500.00, 3.50, 0.71, 14_000_000),
    "JPM": (195.00, 0.40, 0.21, 9_000_000),
    "V": (280.00, -0.70, -0.25, 6_000_000),
    "NFLX": (600.00, 5.10, 0.86, 3_500_000),
    # Crypto
    "BTC-USD": (45_000.00, 1_200.00, 2.74, 25_000_000_000),
    "ETH-USD": (3_200.00, -45.00, -1.39, 15_000_000_000),
    "ADA-USD": (0.45, 0.02, 4.65, 500_000_000),
    "SOL-USD": (145.00, 3.10, 2.18, 2_400_000_000),
}

# Generic baseline for symbols not in the table above
DEFAULT_BASELINE_PRICE = 100.0

# Annualized volatility used when synthesizing historical paths
# sigma: annualized volatility (higher = more price movement)
TICKER_SIGMA: dict[str, float] = {
    "AAPL": 0.22,
    "GOOGL": 0.25,
    "MSFT": 0.20,
    "AMZN": 0.28,
    "TSLA": 0.50,  # High volatility
    "NVDA": 0.40,
    "META": 0.30,
    "JPM": 0.18,  # Low volatility (bank)
    "V": 0.17,  # Low volatility (payments)
    "NFLX": 0.35,
    "VAS.AX": 0.14,  # Broad index ETF
    "VGS.AX": 0.13,
    "VAF.AX": 0.05,  # Bond ETF
    "BTC-USD": 0.65,
    "ETH-USD": 0.80,
}

DEFAULT_SIGMA = 0.25
DEFAULT_CRYPTO_SIGMA = 0.90

# Maximum relative jitter applied to synthetic quotes (+/- 0.5%)
QUOTE_JITTER = 0.005
