import numpy as np

from geotransform.config import GeoTransformConfig, RansacConfig, ransac_kwargs, setup_logging
from geotransform.transform import (
    Affine2D, FitEvaluator, Helmert3D, create_transform, ransac,
)


MODELS_2D = ("translation", "rotation", "scaling", "helmert_2d", "affine", "projective", "perspective")


def main() -> None:
    config = GeoTransformConfig(ransac=RansacConfig(seed=42), log_level="INFO")
    setup_logging(config.log_level)
    rng = np.random.default_rng(0)

    # True affine transform
    T_true = Affine2D.from_coefficients(1.05, 0.02, -0.01, 0.98, 15.0, -8.0)

    # Generate inlier points
    n_in = 200
    pts0 = rng.uniform([0, 0], [640, 480], size=(n_in, 2)).astype(np.float64)
    pts1 = T_true.transform_points(pts0)

    # Add Gaussian noise (pixel noise)
    pts1 += rng.normal(0.0, 0.8, size=pts1.shape)

    print("Least squares fits on noisy inliers:")
    for kind in MODELS_2D:
        report = FitEvaluator(create_transform(kind, config)).evaluate(pts0, pts1)
        if report is None:
            print(f"  {kind:12s} failed")
            continue
        print(f"  {kind:12s} rmse = {report.rmse:10.4f}  (dof = {report.degrees_of_freedom})")

    # Add outliers (wrong matches)
    n_out = 80
    o0 = rng.uniform([0, 0], [640, 480], size=(n_out, 2)).astype(np.float64)
    o1 = rng.uniform([0, 0], [640, 480], size=(n_out, 2)).astype(np.float64)

    pts0_all = np.vstack([pts0, o0])
    pts1_all = np.vstack([pts1, o1])

    res = ransac(
        Affine2D,
        pts0_all,
        pts1_all,
        **ransac_kwargs(config),
    )

    print("T_true:\n", T_true.matrix())
    if res is None:
        print("RANSAC failed.")
        return

    print("T_est:\n", res.model.matrix())
    print("num_inliers:", res.num_inliers, "/", pts0_all.shape[0])
    print("rms_error:", res.rms_error)
    print("iterations:", res.iterations)

    # 3D similarity
    h_true = Helmert3D(100.0, -50.0, 20.0, 1.0002, 0.01, -0.02, 0.3)
    p3 = rng.uniform(-500, 500, size=(30, 3))
    q3 = h_true.transform_points(p3) + rng.normal(0.0, 0.01, size=p3.shape)

    h_est = create_transform("helmert_3d", config)
    report = FitEvaluator(h_est).evaluate(p3, q3)
    print("Helmert3D:", h_est)
    if report is not None:
        print("  rmse:", report.rmse)


if __name__ == "__main__":
    main()
