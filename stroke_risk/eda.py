"""
Exploratory Data Analysis (EDA) Module
======================================

Provides analysis and visualization of the cleaned stroke dataset.

Functions:
    - plot_class_balance: Stroke vs no-stroke counts
    - plot_numeric_distributions: Histograms split by label
    - plot_stroke_rate_by_category: Stroke rate per categorical level
    - plot_correlation_matrix: Correlation heatmap
    - plot_box_plots: Numeric features by label
    - association_tests: Chi-square / Mann-Whitney tests against the label
    - generate_eda_report: Full EDA report with all visualizations
"""

import logging
from pathlib import Path
from typing import Dict, Any, List, Optional, Tuple

import pandas as pd
import numpy as np
import matplotlib.pyplot as plt
import seaborn as sns
from scipy import stats

from .data_loader import TARGET_COLUMN, NUMERIC_COLUMNS, BINARY_COLUMNS, CATEGORICAL_COLUMNS

logger = logging.getLogger(__name__)

# Set style for all plots
plt.style.use('seaborn-v0_8-whitegrid')
sns.set_palette("husl")


def plot_class_balance(
    df: pd.DataFrame,
    figsize: Tuple[int, int] = (6, 4),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Bar chart of label counts with percentages.

    Returns:
        Matplotlib Figure object
    """
    counts = df[TARGET_COLUMN].value_counts().sort_index()

    fig, ax = plt.subplots(figsize=figsize)
    bars = ax.bar(['No Stroke', 'Stroke'][:len(counts)], counts.values,
                  color=['steelblue', 'coral'][:len(counts)], alpha=0.8)
    for bar, count in zip(bars, counts.values):
        ax.annotate(f'{count} ({count / counts.sum() * 100:.1f}%)',
                    (bar.get_x() + bar.get_width() / 2, bar.get_height()),
                    ha='center', va='bottom', fontsize=9)

    ax.set_ylabel('Patients')
    ax.set_title('Class Balance', fontsize=12, fontweight='bold')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Class balance plot saved to {save_path}")

    return fig


def plot_numeric_distributions(
    df: pd.DataFrame,
    columns: Optional[List[str]] = None,
    figsize: Tuple[int, int] = (15, 4),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Histogram + KDE of each numeric column, split by label.

    Returns:
        Matplotlib Figure object
    """
    columns = columns or NUMERIC_COLUMNS

    fig, axes = plt.subplots(1, len(columns), figsize=figsize)
    axes = np.atleast_1d(axes)

    for ax, col in zip(axes, columns):
        sns.histplot(data=df, x=col, hue=TARGET_COLUMN, kde=True, stat='density',
                     common_norm=False, bins=40, alpha=0.5, ax=ax)

        median_val = df[col].median()
        ax.axvline(median_val, color='green', linestyle='--', label=f'Median: {median_val:.1f}')
        ax.set_title(f'{col}', fontsize=10, fontweight='bold')

    plt.suptitle('Numeric Distributions by Stroke', fontsize=14, fontweight='bold')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Distribution plots saved to {save_path}")

    return fig


def plot_stroke_rate_by_category(
    df: pd.DataFrame,
    columns: Optional[List[str]] = None,
    figsize: Tuple[int, int] = (14, 10),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Stroke rate per level of each categorical or flag column.

    Returns:
        Matplotlib Figure object
    """
    columns = columns or (CATEGORICAL_COLUMNS + BINARY_COLUMNS)
    n_cols = len(columns)
    n_rows = (n_cols + 1) // 2

    fig, axes = plt.subplots(n_rows, 2, figsize=figsize)
    axes = np.atleast_1d(axes).flatten()

    overall_rate = df[TARGET_COLUMN].mean()

    for idx, col in enumerate(columns):
        ax = axes[idx]
        rates = df.groupby(col)[TARGET_COLUMN].mean().sort_values(ascending=False)
        ax.bar(rates.index.astype(str), rates.values * 100, color='coral', alpha=0.8)
        ax.axhline(overall_rate * 100, color='grey', linestyle='--',
                   label=f'Overall: {overall_rate * 100:.2f}%')
        ax.set_ylabel('Stroke rate (%)')
        ax.set_title(f'{col}', fontsize=10, fontweight='bold')
        ax.tick_params(axis='x', rotation=30)
        ax.legend(fontsize=8)

    # Hide unused subplots
    for idx in range(n_cols, len(axes)):
        axes[idx].set_visible(False)

    plt.suptitle('Stroke Rate by Category', fontsize=14, fontweight='bold')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Stroke rate plots saved to {save_path}")

    return fig


def plot_correlation_matrix(
    df: pd.DataFrame,
    method: str = 'pearson',
    figsize: Tuple[int, int] = (9, 7),
    save_path: Optional[str] = None
) -> Tuple[plt.Figure, pd.DataFrame]:
    """
    Create a correlation heatmap for numeric columns, flags and the label.

    Args:
        df: DataFrame with numerical data
        method: Correlation method ('pearson', 'spearman', 'kendall')
        figsize: Figure size (width, height)
        save_path: Path to save the figure (optional)

    Returns:
        Tuple of (Figure, correlation matrix DataFrame)
    """
    columns = [c for c in NUMERIC_COLUMNS + BINARY_COLUMNS + [TARGET_COLUMN] if c in df.columns]
    corr_matrix = df[columns].astype(float).corr(method=method)

    fig, ax = plt.subplots(figsize=figsize)

    mask = np.triu(np.ones_like(corr_matrix, dtype=bool), k=1)
    sns.heatmap(
        corr_matrix,
        mask=mask,
        annot=True,
        fmt='.3f',
        cmap='RdYlBu_r',
        center=0,
        square=True,
        linewidths=0.5,
        cbar_kws={"shrink": 0.8, "label": "Correlation"},
        ax=ax,
        vmin=-1,
        vmax=1
    )

    ax.set_title(f'Correlation Matrix ({method.capitalize()})',
                 fontsize=14, fontweight='bold')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Correlation matrix saved to {save_path}")

    return fig, corr_matrix


def plot_box_plots(
    df: pd.DataFrame,
    figsize: Tuple[int, int] = (14, 4),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Box plots of numeric columns by label for outlier inspection.

    Returns:
        Matplotlib Figure object
    """
    fig, axes = plt.subplots(1, len(NUMERIC_COLUMNS), figsize=figsize)
    axes = np.atleast_1d(axes)

    for ax, col in zip(axes, NUMERIC_COLUMNS):
        sns.boxplot(data=df, x=TARGET_COLUMN, y=col, ax=ax, notch=True)
        ax.set_xticks([0, 1])
        ax.set_xticklabels(['No Stroke', 'Stroke'])
        ax.set_xlabel('')
        ax.set_title(f'{col}', fontsize=10, fontweight='bold')

    plt.suptitle('Box Plots by Stroke - Outlier Detection', fontsize=14, fontweight='bold')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Box plots saved to {save_path}")

    return fig


def association_tests(df: pd.DataFrame) -> Dict[str, Dict[str, Any]]:
    """
    Test each feature for association with the label.

    Categorical and flag columns use a chi-square test of independence;
    numeric columns use a two-sided Mann-Whitney U test.

    Returns:
        Dictionary keyed by column with test name, statistic and p-value
    """
    results = {}
    labels = df[TARGET_COLUMN].astype(int)

    for col in CATEGORICAL_COLUMNS + BINARY_COLUMNS:
        table = pd.crosstab(df[col], labels)
        if table.shape[0] < 2 or table.shape[1] < 2:
            continue
        chi2, p_value, dof, _ = stats.chi2_contingency(table)
        results[col] = {
            'test': 'chi2',
            'statistic': float(chi2),
            'p_value': float(p_value),
            'dof': int(dof)
        }

    for col in NUMERIC_COLUMNS:
        positives = df.loc[labels == 1, col].dropna()
        negatives = df.loc[labels == 0, col].dropna()
        if positives.empty or negatives.empty:
            continue
        u_stat, p_value = stats.mannwhitneyu(positives, negatives, alternative='two-sided')
        results[col] = {
            'test': 'mannwhitneyu',
            'statistic': float(u_stat),
            'p_value': float(p_value),
            'median_stroke': float(positives.median()),
            'median_no_stroke': float(negatives.median())
        }

    return results


def generate_eda_report(
    df: pd.DataFrame,
    output_dir: str = "reports/figures/",
    show_plots: bool = False
) -> Dict[str, Any]:
    """
    Generate a complete EDA report with all visualizations.

    Args:
        df: Cleaned DataFrame to analyze
        output_dir: Directory to save figures
        show_plots: Whether to display plots interactively

    Returns:
        Dictionary containing EDA results and file paths
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    report = {
        "data_shape": df.shape,
        "columns": list(df.columns),
        "figures": [],
        "correlation_matrix": None,
        "statistics": {},
        "stroke_rates": {},
        "associations": {}
    }

    logger.info("=" * 60)
    logger.info("STARTING EXPLORATORY DATA ANALYSIS")
    logger.info("=" * 60)

    logger.info("Plotting class balance...")
    plot_class_balance(df, save_path=str(output_dir / "01_class_balance.png"))
    report["figures"].append("01_class_balance.png")

    logger.info("Plotting numeric distributions...")
    plot_numeric_distributions(df, save_path=str(output_dir / "02_distributions.png"))
    report["figures"].append("02_distributions.png")

    logger.info("Plotting stroke rate by category...")
    plot_stroke_rate_by_category(df, save_path=str(output_dir / "03_stroke_rate_by_category.png"))
    report["figures"].append("03_stroke_rate_by_category.png")

    logger.info("Computing correlation matrix...")
    _, corr_matrix = plot_correlation_matrix(
        df,
        save_path=str(output_dir / "04_correlation_matrix.png")
    )
    report["figures"].append("04_correlation_matrix.png")
    report["correlation_matrix"] = corr_matrix.to_dict()

    logger.info("Creating box plots for outlier detection...")
    plot_box_plots(df, save_path=str(output_dir / "05_box_plots.png"))
    report["figures"].append("05_box_plots.png")

    for col in NUMERIC_COLUMNS:
        report["statistics"][col] = {
            "mean": float(df[col].mean()),
            "std": float(df[col].std()),
            "min": float(df[col].min()),
            "max": float(df[col].max()),
            "skew": float(df[col].skew()),
            "kurtosis": float(df[col].kurtosis())
        }

    for col in CATEGORICAL_COLUMNS + BINARY_COLUMNS:
        rates = df.groupby(col)[TARGET_COLUMN].mean()
        report["stroke_rates"][col] = {str(k): float(v) for k, v in rates.items()}

    logger.info("Running association tests...")
    report["associations"] = association_tests(df)

    if show_plots:
        plt.show()
    else:
        plt.close('all')

    logger.info("=" * 60)
    logger.info("EDA COMPLETE - All figures saved to: %s", output_dir)
    logger.info("=" * 60)

    return report


def print_association_insights(associations: Dict[str, Dict[str, Any]], alpha: float = 0.05) -> None:
    """
    Print features significantly associated with stroke.

    Args:
        associations: Dictionary from association_tests
        alpha: Significance level
    """
    print("\n" + "=" * 50)
    print("ASSOCIATION INSIGHTS")
    print("=" * 50)

    significant = {
        col: res for col, res in associations.items() if res['p_value'] < alpha
    }

    if significant:
        print(f"\nFeatures associated with stroke (p < {alpha}):")
        for col, res in sorted(significant.items(), key=lambda item: item[1]['p_value']):
            print(f"  • {col}: {res['test']} = {res['statistic']:.3f}, p = {res['p_value']:.2e}")
    else:
        print(f"\nNo feature reaches p < {alpha}")

    not_significant = sorted(set(associations) - set(significant))
    if not_significant:
        print(f"\nNot significant: {', '.join(not_significant)}")

    print("=" * 50 + "\n")
