"""
Model Evaluation Module
=======================

Provides classification metrics and visualizations on the held-out partition.

Features:
    - Confusion matrix, sensitivity, specificity, precision, F1
    - ROC curve and AUC
    - Operating threshold maximising Youden's J statistic
    - ROC, confusion matrix and feature importance plots
    - Evaluation report generation
"""

import logging
import json
from pathlib import Path
from typing import Dict, Any, Optional, Tuple

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns
from sklearn.metrics import confusion_matrix, roc_auc_score, roc_curve

from .model import StrokeRiskModel

logger = logging.getLogger(__name__)


def _safe_ratio(numerator: float, denominator: float) -> float:
    return float(numerator / denominator) if denominator else 0.0


def calculate_metrics(
    y_true: np.ndarray,
    y_score: np.ndarray,
    threshold: float = 0.5
) -> Dict[str, Any]:
    """
    Calculate classification metrics at a fixed threshold.

    A row is predicted positive when its score exceeds the threshold.

    Args:
        y_true: Ground truth labels (0/1)
        y_score: Predicted P(stroke)
        threshold: Decision threshold

    Returns:
        Dictionary containing the confusion matrix and derived rates
    """
    y_true = np.asarray(y_true).astype(int)
    y_score = np.asarray(y_score, dtype=float)
    y_pred = (y_score > threshold).astype(int)

    tn, fp, fn, tp = confusion_matrix(y_true, y_pred, labels=[0, 1]).ravel()

    sensitivity = _safe_ratio(tp, tp + fn)
    specificity = _safe_ratio(tn, tn + fp)
    precision = _safe_ratio(tp, tp + fp)
    f1 = _safe_ratio(2 * precision * sensitivity, precision + sensitivity)

    if np.unique(y_true).size == 2:
        auc = float(roc_auc_score(y_true, y_score))
    else:
        logger.warning("Only one class present in y_true; ROC-AUC is undefined")
        auc = float('nan')

    return {
        'threshold': float(threshold),
        'confusion_matrix': {
            'tn': int(tn), 'fp': int(fp), 'fn': int(fn), 'tp': int(tp)
        },
        'sensitivity': sensitivity,
        'specificity': specificity,
        'precision': precision,
        'accuracy': _safe_ratio(tp + tn, len(y_true)),
        'f1': f1,
        'roc_auc': auc,
        'n_samples': int(len(y_true)),
        'n_positive': int(y_true.sum())
    }


def compute_roc(y_true: np.ndarray, y_score: np.ndarray) -> Dict[str, np.ndarray]:
    """
    Compute the ROC curve.

    Returns:
        Dictionary with 'fpr', 'tpr' and 'thresholds' arrays
    """
    fpr, tpr, thresholds = roc_curve(np.asarray(y_true).astype(int), np.asarray(y_score))
    return {'fpr': fpr, 'tpr': tpr, 'thresholds': thresholds}


def youden_threshold(y_true: np.ndarray, y_score: np.ndarray) -> Dict[str, float]:
    """
    Find the threshold maximising Youden's J = sensitivity + specificity - 1.

    roc_curve labels scores >= threshold as positive. The first point of the
    curve is the "nothing positive" sentinel (an infinite threshold, or
    max(score) + 1 on older scikit-learn) and is always skipped.

    Returns:
        Dictionary with threshold, j_statistic, sensitivity and specificity
    """
    roc = compute_roc(y_true, y_score)
    fpr, tpr, thresholds = roc['fpr'], roc['tpr'], roc['thresholds']

    j_scores = tpr - fpr
    j_scores[0] = -np.inf
    best = int(np.argmax(j_scores))

    return {
        'threshold': float(thresholds[best]),
        'j_statistic': float(tpr[best] - fpr[best]),
        'sensitivity': float(tpr[best]),
        'specificity': float(1.0 - fpr[best])
    }


def plot_roc_curve(
    y_true: np.ndarray,
    y_score: np.ndarray,
    youden: Optional[Dict[str, float]] = None,
    figsize: Tuple[int, int] = (8, 6),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Plot the ROC curve with the chance diagonal and the Youden point.

    Returns:
        Matplotlib Figure object
    """
    roc = compute_roc(y_true, y_score)
    auc = roc_auc_score(np.asarray(y_true).astype(int), y_score)

    fig, ax = plt.subplots(figsize=figsize)
    ax.plot(roc['fpr'], roc['tpr'], color='darkorange', linewidth=2,
            label=f'Random Forest (AUC = {auc:.4f})')
    ax.plot([0, 1], [0, 1], linestyle='--', color='grey', label='Chance')

    if youden is not None:
        ax.scatter(1 - youden['specificity'], youden['sensitivity'], color='red', s=60,
                   zorder=5, label=f"Youden J={youden['j_statistic']:.3f} "
                                   f"(t={youden['threshold']:.3f})")

    ax.set_xlabel('False Positive Rate (1 - Specificity)')
    ax.set_ylabel('True Positive Rate (Sensitivity)')
    ax.set_title('ROC Curve - Stroke Prediction', fontsize=14, fontweight='bold')
    ax.legend(loc='lower right')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"ROC curve saved to {save_path}")

    return fig


def plot_confusion_matrix(
    metrics: Dict[str, Any],
    figsize: Tuple[int, int] = (6, 5),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Heatmap of the confusion matrix from calculate_metrics.

    Returns:
        Matplotlib Figure object
    """
    cm = metrics['confusion_matrix']
    matrix = np.array([[cm['tn'], cm['fp']], [cm['fn'], cm['tp']]])

    fig, ax = plt.subplots(figsize=figsize)
    sns.heatmap(
        matrix,
        annot=True,
        fmt='d',
        cmap='Blues',
        cbar=False,
        xticklabels=['No Stroke', 'Stroke'],
        yticklabels=['No Stroke', 'Stroke'],
        ax=ax
    )
    ax.set_xlabel('Predicted')
    ax.set_ylabel('Actual')
    ax.set_title(f"Confusion Matrix (threshold={metrics['threshold']:.2f})",
                 fontsize=12, fontweight='bold')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Confusion matrix saved to {save_path}")

    return fig


def plot_feature_importances(
    importances: pd.Series,
    top_n: int = 20,
    figsize: Tuple[int, int] = (10, 8),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Horizontal bar chart of the most important encoded features.

    Returns:
        Matplotlib Figure object
    """
    top = importances.head(top_n).iloc[::-1]

    fig, ax = plt.subplots(figsize=figsize)
    ax.barh(top.index, top.values, color='steelblue', alpha=0.8)
    ax.set_xlabel('Importance (mean decrease in impurity)')
    ax.set_title(f'Top {len(top)} Feature Importances', fontsize=14, fontweight='bold')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Feature importance plot saved to {save_path}")

    return fig


def evaluate_model(
    model: StrokeRiskModel,
    X_test: pd.DataFrame,
    y_test: pd.Series,
    threshold: float = 0.5,
    output_dir: str = "reports/",
    show_plots: bool = False
) -> Dict[str, Any]:
    """
    Run complete model evaluation on the held-out partition.

    Args:
        model: Trained model
        X_test: Test features
        y_test: Test labels
        threshold: Classification threshold for the confusion matrix
        output_dir: Directory for output files
        show_plots: Whether to display plots interactively

    Returns:
        Dictionary containing metrics, Youden threshold and file paths
    """
    output_dir = Path(output_dir)
    figures_dir = output_dir / "figures"
    metrics_dir = output_dir / "metrics"

    figures_dir.mkdir(parents=True, exist_ok=True)
    metrics_dir.mkdir(parents=True, exist_ok=True)

    logger.info("=" * 60)
    logger.info("STARTING MODEL EVALUATION")
    logger.info("=" * 60)

    y_true = np.asarray(y_test).astype(int)
    y_score = model.predict_proba(X_test)[:, 1]

    logger.info("Calculating evaluation metrics...")
    metrics = calculate_metrics(y_true, y_score, threshold=threshold)
    youden = youden_threshold(y_true, y_score)
    metrics['youden'] = youden
    # roc_curve counts score >= t as positive; calculate_metrics uses score > t
    metrics['at_youden_threshold'] = calculate_metrics(
        y_true, y_score, threshold=np.nextafter(youden['threshold'], -np.inf)
    )
    metrics['cv'] = {
        'best_score': model.training_info.get('cv_best_score'),
        'fold_scores': model.training_info.get('cv_fold_scores'),
        'scoring': model.scoring
    }

    metrics_file = metrics_dir / "evaluation_metrics.json"
    with open(metrics_file, 'w') as f:
        json.dump(metrics, f, indent=2)
    logger.info(f"Metrics saved to {metrics_file}")

    figures = []

    logger.info("Generating ROC curve...")
    plot_roc_curve(y_true, y_score, youden, save_path=str(figures_dir / "eval_roc_curve.png"))
    figures.append("eval_roc_curve.png")

    logger.info("Generating confusion matrix...")
    plot_confusion_matrix(metrics, save_path=str(figures_dir / "eval_confusion_matrix.png"))
    figures.append("eval_confusion_matrix.png")

    logger.info("Generating feature importances...")
    plot_feature_importances(
        model.get_feature_importances(),
        save_path=str(figures_dir / "eval_feature_importances.png")
    )
    figures.append("eval_feature_importances.png")

    if show_plots:
        plt.show()
    else:
        plt.close('all')

    result = {
        'metrics': metrics,
        'roc': compute_roc(y_true, y_score),
        'figures': figures,
        'metrics_file': str(metrics_file)
    }

    logger.info("=" * 60)
    logger.info("EVALUATION COMPLETE")
    logger.info(f"  ROC-AUC: {metrics['roc_auc']:.4f}")
    logger.info(f"  Sensitivity: {metrics['sensitivity']:.4f}")
    logger.info(f"  Specificity: {metrics['specificity']:.4f}")
    logger.info(f"  Youden threshold: {youden['threshold']:.4f}")
    logger.info("=" * 60)

    return result


def print_evaluation_report(metrics: Dict[str, Any]) -> None:
    """
    Print a formatted evaluation report to console.

    Args:
        metrics: Metrics dictionary from evaluate_model
    """
    cm = metrics['confusion_matrix']

    print("\n" + "=" * 70)
    print("MODEL EVALUATION REPORT")
    print("=" * 70)

    print(f"\nConfusion Matrix (threshold={metrics['threshold']:.2f}):")
    print("-" * 70)
    print(f"{'':<18} {'Pred No Stroke':<16} {'Pred Stroke':<16}")
    print(f"{'Actual No Stroke':<18} {cm['tn']:<16} {cm['fp']:<16}")
    print(f"{'Actual Stroke':<18} {cm['fn']:<16} {cm['tp']:<16}")
    print("-" * 70)

    print("\nMetrics:")
    print(f"  • ROC-AUC: {metrics['roc_auc']:.4f}")
    print(f"  • Sensitivity (recall): {metrics['sensitivity']:.4f}")
    print(f"  • Specificity: {metrics['specificity']:.4f}")
    print(f"  • Precision: {metrics['precision']:.4f}")
    print(f"  • F1: {metrics['f1']:.4f}")
    print(f"  • Accuracy: {metrics['accuracy']:.4f}")
    print(f"  • Samples evaluated: {metrics['n_samples']} ({metrics['n_positive']} strokes)")

    if 'youden' in metrics:
        youden = metrics['youden']
        print("\nYouden's J optimal threshold:")
        print(f"  • Threshold: {youden['threshold']:.4f}")
        print(f"  • J: {youden['j_statistic']:.4f} "
              f"(sensitivity {youden['sensitivity']:.4f}, "
              f"specificity {youden['specificity']:.4f})")

    auc = metrics['roc_auc']
    print("\nInterpretation:")
    if auc > 0.9:
        print("  ✓ Excellent discrimination (AUC > 0.9)")
    elif auc > 0.8:
        print("  ✓ Good discrimination (AUC > 0.8)")
    elif auc > 0.7:
        print("  ⚠ Fair discrimination (AUC > 0.7)")
    else:
        print("  ✗ Poor discrimination (AUC <= 0.7) - consider different approach")

    print("=" * 70 + "\n")
