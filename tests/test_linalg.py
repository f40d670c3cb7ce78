"""Test the linear algebra operations of DistributedMatrix
    Designed to run with any number of processes
    $ mpiexec -n 5 pytest test_linalg.py --with-mpi
"""
import numpy as np
from mpi4py import MPI
import pytest
from numpy.testing import assert_allclose, assert_array_equal

from scalapack_mpi import (
    DistributedMatrix,
    NumericalFailure,
    ProcessGrid,
    Property,
    State,
    StatePreconditionError,
)

np.random.seed(42)
size = MPI.COMM_WORLD.Get_size()
rank = MPI.COMM_WORLD.Get_rank()


def _spd(n, dtype=np.float64):
    b = np.random.normal(0., 1., (n, n))
    return (b @ b.T + n * np.eye(n)).astype(dtype)


par1 = {'x': _spd(10), 'grid_shape': (1, 1), 'block_sizes': (3, 3),
        'dtype': np.float64}
par2 = {'x': _spd(24), 'grid_shape': (size, 1), 'block_sizes': (2, 2),
        'dtype': np.float64}
par3 = {'x': _spd(17), 'grid_shape': (1, size), 'block_sizes': (4, 4),
        'dtype': np.float64}
par4 = {'x': _spd(33), 'grid_shape': None, 'block_sizes': (5, 5),
        'dtype': np.float64}
par5 = {'x': _spd(20, np.float32), 'grid_shape': None, 'block_sizes': (3, 3),
        'dtype': np.float32}
x_small = _spd(12)
par6 = {'x': _spd(12), 'grid_shape': (max(1, size // 2), 1), 'block_sizes': (32, 32),
        'dtype': np.float64}

# General (non-square) matrices for the norms
par_norm1 = {'x': np.random.normal(0., 1., (15, 9)), 'grid_shape': (1, 1),
             'block_sizes': (2, 4)}
par_norm2 = {'x': np.random.normal(0., 1., (8, 27)), 'grid_shape': (1, size),
             'block_sizes': (3, 2)}
par_norm3 = {'x': np.random.normal(0., 1., (31, 22)), 'grid_shape': None,
             'block_sizes': (4, 3)}


def _grid(par):
    if par['grid_shape'] is None:
        return ProcessGrid(MPI.COMM_WORLD, matrix_shape=par['x'].shape,
                           block_sizes=par['block_sizes'])
    return ProcessGrid(MPI.COMM_WORLD, grid_shape=par['grid_shape'])


def _rtol(dtype):
    return 1e-4 if dtype == np.float32 else 1e-9


def _symmetric(par, grid):
    return DistributedMatrix.to_dist(x=par['x'], grid=grid,
                                     block_sizes=par['block_sizes'],
                                     matrix_property=Property.SYMMETRIC)


@pytest.mark.mpi(min_size=1)
@pytest.mark.parametrize("par", [(par1), (par2), (par3), (par4), (par5), (par6)])
def test_cholesky(par):
    """Lower Cholesky factor"""
    grid = _grid(par)
    dist_matrix = _symmetric(par, grid)
    assert dist_matrix.dtype == par['dtype']
    dist_matrix.compute_cholesky_factorization()
    assert dist_matrix.state is State.CHOLESKY
    assert dist_matrix.matrix_property is Property.LOWER_TRIANGULAR

    factor = dist_matrix.copy_to(broadcast=True)
    expected = np.linalg.cholesky(par['x'].astype(np.float64))
    assert_array_equal(np.triu(factor, 1), 0)
    assert_allclose(factor, expected, rtol=_rtol(par['dtype']),
                    atol=_rtol(par['dtype']) * np.abs(expected).max())
    grid.free()


@pytest.mark.mpi(min_size=1)
@pytest.mark.parametrize("par", [(par1), (par2), (par3), (par4), (par5), (par6)])
def test_invert(par):
    """Inverse through the Cholesky factor"""
    grid = _grid(par)
    dist_matrix = _symmetric(par, grid)
    dist_matrix.compute_cholesky_factorization()
    dist_matrix.invert()
    assert dist_matrix.state is State.INVERSE
    assert dist_matrix.matrix_property is Property.SYMMETRIC

    inverse = dist_matrix.copy_to(broadcast=True)
    expected = np.linalg.inv(par['x'].astype(np.float64))
    # Both triangles are filled
    assert_array_equal(inverse, inverse.T)
    assert_allclose(inverse, expected, rtol=_rtol(par['dtype']) * 100,
                    atol=_rtol(par['dtype']) * np.abs(expected).max())
    assert_allclose(inverse @ par['x'], np.eye(par['x'].shape[0]),
                    atol=_rtol(par['dtype']) * 1000)
    grid.free()


@pytest.mark.mpi(min_size=1)
@pytest.mark.parametrize("par", [(par1), (par4)])
def test_invert_requires_cholesky(par):
    """Inversion of a matrix that is not factorized"""
    grid = _grid(par)
    dist_matrix = _symmetric(par, grid)
    with pytest.raises(StatePreconditionError):
        dist_matrix.invert()
    assert dist_matrix.state is State.MATRIX
    assert_array_equal(dist_matrix.copy_to(broadcast=True), par['x'])
    grid.free()


@pytest.mark.mpi(min_size=1)
@pytest.mark.parametrize("par", [(par1), (par2), (par3), (par4), (par5), (par6)])
def test_eigenvalues(par):
    """Eigenvalues of a symmetric matrix"""
    grid = _grid(par)
    dist_matrix = _symmetric(par, grid)
    eigenvalues = dist_matrix.eigenvalues_symmetric()
    assert dist_matrix.state is State.EIGENVALUES
    assert eigenvalues.dtype == par['dtype']
    assert eigenvalues.shape == (par['x'].shape[0],)
    assert np.all(np.diff(eigenvalues) >= 0)

    expected = np.linalg.eigvalsh(par['x'].astype(np.float64))
    assert_allclose(eigenvalues, expected, rtol=_rtol(par['dtype']))

    # Identical on every process, inactive ones included
    everywhere = grid.base_comm.allgather(eigenvalues)
    for values in everywhere:
        assert_array_equal(values, eigenvalues)

    # Content is not a matrix anymore
    with pytest.raises(StatePreconditionError):
        dist_matrix.eigenvalues_symmetric()
    with pytest.raises(StatePreconditionError):
        dist_matrix.copy_to()
    with pytest.raises(StatePreconditionError):
        dist_matrix.frobenius_norm()
    grid.free()


@pytest.mark.mpi(min_size=1)
def test_eigenvalues_identity():
    """Eigenvalues of the identity"""
    grid = ProcessGrid(MPI.COMM_WORLD, matrix_shape=(16, 16), block_sizes=(4, 4))
    dist_matrix = DistributedMatrix(16, grid, block_sizes=4)
    dist_matrix.fill(lambda i, j: (i == j).astype(np.float64))
    eigenvalues = dist_matrix.eigenvalues_symmetric()
    assert_allclose(eigenvalues, np.ones(16), rtol=0, atol=1e-14)
    grid.free()


@pytest.mark.mpi(min_size=1)
@pytest.mark.parametrize("par", [(par1), (par2), (par3), (par4), (par5), (par6)])
def test_eigenpairs(par):
    """Eigenvalues and eigenvectors of a symmetric matrix"""
    grid = _grid(par)
    dist_matrix = _symmetric(par, grid)
    eigenvalues = dist_matrix.eigenpairs_symmetric()
    assert dist_matrix.state is State.EIGENVECTORS
    assert dist_matrix.matrix_property is Property.GENERAL

    x = par['x'].astype(np.float64)
    vectors = dist_matrix.copy_to(broadcast=True).astype(np.float64)
    rtol = _rtol(par['dtype'])
    assert_allclose(eigenvalues, np.linalg.eigvalsh(x), rtol=rtol)
    assert_allclose(x @ vectors, vectors * eigenvalues,
                    atol=rtol * 10 * np.abs(eigenvalues).max())
    assert_allclose(vectors.T @ vectors, np.eye(x.shape[0]), atol=rtol * 100)
    grid.free()


@pytest.mark.mpi(min_size=1)
@pytest.mark.parametrize("par", [(par1), (par2), (par4), (par5)])
@pytest.mark.parametrize("operation", ["cholesky", "inverse", "eigenpairs", "eigenvalues"])
def test_factorize_after_assign(par, operation):
    """Fresh content restores the property chosen at construction"""
    grid = _grid(par)
    dist_matrix = _symmetric(par, grid)
    if operation == "cholesky":
        dist_matrix.compute_cholesky_factorization()
    elif operation == "inverse":
        dist_matrix.compute_cholesky_factorization()
        dist_matrix.invert()
    elif operation == "eigenpairs":
        dist_matrix.eigenpairs_symmetric()
    else:
        dist_matrix.eigenvalues_symmetric()

    dist_matrix.assign(par['x'])
    assert dist_matrix.state is State.MATRIX
    assert dist_matrix.matrix_property is Property.SYMMETRIC
    dist_matrix.compute_cholesky_factorization()
    expected = np.linalg.cholesky(par['x'].astype(np.float64))
    assert_allclose(dist_matrix.copy_to(broadcast=True), expected,
                    rtol=_rtol(par['dtype']),
                    atol=_rtol(par['dtype']) * np.abs(expected).max())

    dist_matrix.fill(lambda i, j: par['x'][i, j])
    assert dist_matrix.matrix_property is Property.SYMMETRIC
    eigenvalues = dist_matrix.eigenvalues_symmetric()
    assert_allclose(eigenvalues, np.linalg.eigvalsh(par['x'].astype(np.float64)),
                    rtol=_rtol(par['dtype']))
    grid.free()


@pytest.mark.mpi(min_size=1)
def test_assign_with_property():
    """Property given together with fresh content"""
    grid = ProcessGrid(MPI.COMM_WORLD, matrix_shape=(12, 12), block_sizes=(4, 4))
    dist_matrix = DistributedMatrix((12, 12), grid, block_sizes=4)
    assert dist_matrix.matrix_property is Property.GENERAL
    with pytest.raises(StatePreconditionError):
        dist_matrix.assign(x_small).compute_cholesky_factorization()

    dist_matrix.assign(x_small, matrix_property=Property.SYMMETRIC)
    dist_matrix.compute_cholesky_factorization()
    # The new property sticks to later content
    dist_matrix.fill(lambda i, j: x_small[i, j])
    assert dist_matrix.matrix_property is Property.SYMMETRIC
    dist_matrix.fill(lambda i, j: 1. * (i < j), matrix_property=Property.UPPER_TRIANGULAR)
    assert dist_matrix.matrix_property is Property.UPPER_TRIANGULAR

    # Invalid properties are rejected before any content is loaded
    with pytest.raises(ValueError):
        DistributedMatrix((12, 6), grid, block_sizes=4).assign(
            np.zeros((12, 6)), matrix_property=Property.SYMMETRIC)
    assert dist_matrix.state is State.MATRIX
    grid.free()


@pytest.mark.mpi(min_size=1)
@pytest.mark.parametrize("par", [(par1), (par2), (par4)])
def test_not_positive_definite(par):
    """Failed factorization is reported on every process"""
    grid = _grid(par)
    x = par['x'].copy()
    n = x.shape[0]
    x[n // 2, n // 2] = -1.
    dist_matrix = DistributedMatrix.to_dist(x=x, grid=grid,
                                            block_sizes=par['block_sizes'],
                                            matrix_property=Property.SYMMETRIC)
    with pytest.raises(NumericalFailure) as excinfo:
        dist_matrix.compute_cholesky_factorization()
    assert excinfo.value.routine == "potrf"
    assert not excinfo.value.illegal_argument
    assert 1 <= excinfo.value.position <= n // 2 + 1

    # The matrix is left as it was
    assert dist_matrix.state is State.MATRIX
    assert dist_matrix.matrix_property is Property.SYMMETRIC
    assert_array_equal(dist_matrix.copy_to(broadcast=True), x)

    # and can be recovered by regularization
    dist_matrix.fill(lambda i, j: (i == j) * 1.)
    dist_matrix.compute_cholesky_factorization()
    assert dist_matrix.state is State.CHOLESKY
    grid.free()


@pytest.mark.mpi(min_size=1)
@pytest.mark.parametrize("par", [(par1), (par2), (par3), (par4), (par5)])
def test_reciprocal_condition_number(par):
    """Condition number estimate from the Cholesky factor"""
    grid = _grid(par)
    dist_matrix = _symmetric(par, grid)
    a_norm = dist_matrix.l1_norm()
    dist_matrix.compute_cholesky_factorization()
    rcond = dist_matrix.reciprocal_condition_number(a_norm)

    x = par['x'].astype(np.float64)
    expected = 1. / (np.linalg.norm(x, 1) * np.linalg.norm(np.linalg.inv(x), 1))
    # The estimate of the norm of the inverse is a lower bound
    assert expected * (1 - 1e-3) <= rcond <= 10 * expected
    assert grid.base_comm.allgather(rcond) == [rcond] * size
    grid.free()


@pytest.mark.mpi(min_size=1)
@pytest.mark.parametrize("par", [(par_norm1), (par_norm2), (par_norm3),
                                 (par1), (par2), (par6)])
def test_norms(par):
    """Matrix norms"""
    grid = _grid(par)
    dist_matrix = DistributedMatrix.to_dist(x=par['x'], grid=grid,
                                            block_sizes=par['block_sizes'])
    x = par['x']
    assert_allclose(dist_matrix.l1_norm(), np.linalg.norm(x, 1), rtol=1e-12)
    assert_allclose(dist_matrix.linfty_norm(), np.linalg.norm(x, np.inf), rtol=1e-12)
    assert_allclose(dist_matrix.frobenius_norm(), np.linalg.norm(x, 'fro'), rtol=1e-12)

    # Same value on every process
    norms = grid.base_comm.allgather(dist_matrix.l1_norm())
    assert norms == [norms[0]] * size
    grid.free()


@pytest.mark.mpi(min_size=1)
@pytest.mark.parametrize("par", [(par2), (par4)])
def test_norms_inverse(par):
    """Norms of the inverse"""
    grid = _grid(par)
    dist_matrix = _symmetric(par, grid)
    dist_matrix.compute_cholesky_factorization()
    dist_matrix.invert()
    inverse = np.linalg.inv(par['x'])
    assert_allclose(dist_matrix.l1_norm(), np.linalg.norm(inverse, 1), rtol=1e-8)
    assert_allclose(dist_matrix.linfty_norm(), np.linalg.norm(inverse, np.inf), rtol=1e-8)
    assert_allclose(dist_matrix.frobenius_norm(), np.linalg.norm(inverse, 'fro'), rtol=1e-8)
    grid.free()


@pytest.mark.mpi(min_size=1)
def test_state_preconditions():
    """Operations invoked in the wrong state or on the wrong property"""
    grid = ProcessGrid(MPI.COMM_WORLD, matrix_shape=(12, 12), block_sizes=(4, 4))
    dist_matrix = DistributedMatrix(12, grid, block_sizes=4)
    with pytest.raises(StatePreconditionError):
        dist_matrix.compute_cholesky_factorization()
    with pytest.raises(StatePreconditionError):
        dist_matrix.l1_norm()
    with pytest.raises(StatePreconditionError):
        dist_matrix.eigenvalues_symmetric()

    dist_matrix.assign(x_small)
    with pytest.raises(StatePreconditionError):
        dist_matrix.reciprocal_condition_number(1.)

    # Symmetric kernels need a symmetric matrix
    dist_matrix.set_property(Property.GENERAL)
    with pytest.raises(StatePreconditionError):
        dist_matrix.compute_cholesky_factorization()
    with pytest.raises(StatePreconditionError):
        dist_matrix.eigenpairs_symmetric()
    assert dist_matrix.state is State.MATRIX

    dist_matrix.set_property(Property.SYMMETRIC)
    dist_matrix.compute_cholesky_factorization()
    with pytest.raises(StatePreconditionError):
        dist_matrix.compute_cholesky_factorization()
    with pytest.raises(StatePreconditionError):
        dist_matrix.frobenius_norm()
    with pytest.raises(StatePreconditionError):
        dist_matrix.eigenvalues_symmetric()
    assert dist_matrix.state is State.CHOLESKY
    grid.free()


@pytest.mark.mpi(min_size=1)
def test_backend_illegal_arguments():
    """Negative status codes of the backend kernels"""
    grid = ProcessGrid(MPI.COMM_WORLD, matrix_shape=(12, 12), block_sizes=(3, 3))
    dist_matrix = DistributedMatrix.to_dist(x=x_small, grid=grid, block_sizes=3,
                                            matrix_property=Property.SYMMETRIC)
    backend = dist_matrix.backend
    # Kernels are collective over the active processes only
    if grid.active:
        a, desc = dist_matrix.local_array, dist_matrix.descriptor
        assert backend.potrf("X", a, desc) == -1
        assert backend.potrf("L", a.astype(np.float32), desc) == -2
        assert backend.potri("L", a[:, :0], desc) == -2

        w = np.zeros(12)
        empty = np.empty((0, 0))
        iwork = np.empty(1000, dtype=np.int32)
        assert backend.syev("Z", "L", a, desc, w, empty, desc,
                            np.empty(10000), iwork) == -1
        assert backend.syev("N", "L", a, desc, w[:5], empty, desc,
                            np.empty(10000), iwork) == -5
        assert backend.syev("N", "L", a, desc, w, empty, desc,
                            np.empty(0), iwork) == -8
        lwork, liwork = backend.syev_lwork("V", "L", desc)
        assert isinstance(lwork, int) and isinstance(liwork, int)
        assert lwork >= 1 and liwork >= 1

        lwork, liwork = backend.pocon_lwork("L", desc)
        assert backend.pocon("L", a, desc, -1., np.empty(lwork),
                             np.empty(liwork, dtype=np.int32))[1] == -4
        assert backend.pocon("L", a, desc, 1., np.empty(0),
                             np.empty(liwork, dtype=np.int32))[1] == -5

    # Content is untouched
    assert dist_matrix.state is State.MATRIX
    assert_allclose(dist_matrix.copy_to(broadcast=True), x_small)
    grid.free()


def test_numerical_failure():
    """Status codes carried by NumericalFailure"""
    failure = NumericalFailure("potrf", 3)
    assert failure.position == 3
    assert not failure.illegal_argument
    assert isinstance(failure, ArithmeticError)
    assert "potrf" in str(failure)

    failure = NumericalFailure("syev", -8)
    assert failure.position == 8
    assert failure.illegal_argument
